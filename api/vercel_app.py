"""
Vercel-specific Flask application entry point.
The store connection is opened lazily on the first request.
"""

import os
from app import create_app

# Vercel expects the WSGI application to be named 'app'
app = create_app()

if __name__ == "__main__":
    # Local testing only
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
