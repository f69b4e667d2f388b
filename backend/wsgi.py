"""WSGI entry point for production deployment."""
import os
from campus_attendance import create_app

app = create_app(os.getenv('FLASK_ENV', 'production'))

if __name__ == "__main__":
    app.run()
