"""
Site CMS - Server entry point (mode B)

ASGI app for the long-running process: serves the site files, uploaded
images, and the API, storing content and uploads on local disk unless
remote credentials are set.

    uvicorn sitecms.server:app
"""

from sitecms.main import create_app

# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()
