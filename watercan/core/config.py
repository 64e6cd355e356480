# watercan/core/config.py

import os
from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT")
DB_NAME = os.getenv("DB_NAME")
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}?sslmode=require"
)
APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]

# Pricing and account policy
UNIT_PRICE = int(os.getenv("UNIT_PRICE", "30"))
STARTING_BALANCE = int(os.getenv("STARTING_BALANCE", "1000"))

# Listing defaults
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
INVENTORY_HISTORY_LIMIT = 10
CUSTOMER_GROWTH_MONTHS = 6

# Share of outstanding customer debt reported as overdue on the dashboard
OVERDUE_SHARE = float(os.getenv("OVERDUE_SHARE", "0.3"))

# Optional identity provider consulted for roles (e.g. a Clerk-style users API)
IDENTITY_PROVIDER_URL = os.getenv("IDENTITY_PROVIDER_URL")
IDENTITY_PROVIDER_SECRET = os.getenv("IDENTITY_PROVIDER_SECRET")
IDENTITY_PROVIDER_TIMEOUT = float(os.getenv("IDENTITY_PROVIDER_TIMEOUT", "5"))
