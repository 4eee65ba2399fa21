import os

from dotenv import load_dotenv

# ENV_FILE overrides the default lookup of a .env beside the app; real env vars win
load_dotenv(os.getenv("ENV_FILE"))


class Config:
    DB_URL = os.getenv(
        "DB_URL",
        "mysql+mysqlconnector://root:@localhost/inventory_db"
    )
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
    DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 0))
    DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", 30))
    # SQLite only: seconds a writer waits on the database lock
    SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", 15))

    JWT_SECRET_KEY = os.getenv("JWT_SECRET", os.getenv("SECRET_KEY", "your_secret_key"))
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    TOKEN_TTL_HOURS = float(os.getenv("TOKEN_TTL_HOURS", 24))

    # any werkzeug method string, e.g. "scrypt" or "pbkdf2:sha256:600000"
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # attach the underlying database message to 5xx responses
    EXPOSE_ERROR_DETAIL = os.getenv("EXPOSE_ERROR_DETAIL", "false").lower() == "true"
    # allows cheap password hashes; never set in production
    TESTING = os.getenv("TESTING", "false").lower() == "true"

    @classmethod
    def as_dict(cls, overrides=None):
        settings = {
            name: getattr(cls, name)
            for name in dir(cls)
            if name.isupper()
        }
        if overrides:
            settings.update(overrides)
        return settings
