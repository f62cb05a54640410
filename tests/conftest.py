"""Pytest configuration and shared fixtures."""

# Load environment variables from .env file at test startup
# so FSVIEW_* settings are available before fixtures are created
from dotenv import load_dotenv
load_dotenv()

pytest_plugins = [
    "tests.fixtures.api",
]
