import sys

from service_livereload.cli import main

sys.exit(main())
