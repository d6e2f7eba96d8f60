"""
Live-reload service package.

Serves a directory over HTTP and pushes a reload message to connected
browsers whenever the trigger endpoint is hit. Key modules include:

- app.main: FastAPI app, trigger endpoint and static mount
- app.sse: event stream broker, channels, framing and subscriptions
- app.middleware: HTML rewriting that injects the reload client script
"""
