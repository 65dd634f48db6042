"""
Site CMS - Serverless entry point (mode A)

ASGI app for platforms that invoke the API per request and serve the site's
static files themselves.  Content goes to JSONBin and uploads to Cloudinary
when their credentials are set; otherwise reads fall back to the bundled
``content.json`` and writes answer 503.

    uvicorn sitecms.serverless:app
"""

from sitecms.config import MODE_SERVERLESS, Settings
from sitecms.main import create_app

app = create_app(Settings.from_env(mode=MODE_SERVERLESS))
