# Configuration settings
import os
from datetime import timedelta
from dotenv import load_dotenv

# This line loads the variables from your .env file
load_dotenv()


# This class holds all the configuration variables for your app
class Config:
    APP_ENV = os.environ.get('APP_ENV', 'development')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG').upper()

    # No default: create_app refuses to start without it
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)
    AUTH_COOKIE_NAME = 'auth-token'
    PASSWORD_HASH_ITERATIONS = int(os.environ.get('PASSWORD_HASH_ITERATIONS', 200_000))

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///artshare.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ORIGIN = os.environ.get('CORS_ORIGIN')

    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))
    ALLOWED_EXTENSIONS = {ext.strip().lower() for ext in os.environ.get('ALLOWED_EXTENSIONS', 'png,jpg,jpeg,gif,webp').split(',')}

    # Seconds to wait when checking that an external image link is reachable
    LINK_CHECK_TIMEOUT = float(os.environ.get('LINK_CHECK_TIMEOUT', 10))
