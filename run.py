"""
Local development entry point.

Creates the Flask app via create_app() and runs the dev server. Keeps startup
simple and avoids embedding app logic here.
"""

import os

from postboard import create_app

os.environ.setdefault("APP_CONFIG", "postboard.config.DevConfig")
app = create_app()

if __name__ == "__main__":
    # For local dev only; use a proper WSGI server in production.
    app.run(debug=True, port=int(os.getenv("PORT", "3000")))
