"""
Live-reload development server.
"""
