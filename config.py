"""
Runtime configuration for the Ninja School API.

All values come from the environment so the same build runs locally,
in CI and in production.
"""
import os

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "ninjaSchoolDB")

# Signing secret for bearer tokens; override in every real deployment.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_TO_A_SECURE_RANDOM_KEY")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")

PORT = int(os.getenv("PORT", 8000))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
