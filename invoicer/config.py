# invoicer/config.py
import os

VERSION = "1.0.0"

# sqlite file next to the working directory unless told otherwise
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///invoicer.sqlite")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
