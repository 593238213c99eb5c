import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./routeplan.db")

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Route planning policy
# First visit of every day is anchored at this wall-clock time (HH:MM)
ROUTE_DAY_START = os.getenv("ROUTE_DAY_START", "09:00")
ROUTE_DEFAULT_VISIT_MINUTES = int(os.getenv("ROUTE_DEFAULT_VISIT_MINUTES", "120"))
# Miles per minute; 0.517 is roughly 31 mph average urban speed
ROUTE_AVERAGE_SPEED_MPM = float(os.getenv("ROUTE_AVERAGE_SPEED_MPM", "0.517"))

# Directions deep link (Google Maps URLs API)
MAPS_DIRECTIONS_URL = os.getenv("MAPS_DIRECTIONS_URL", "https://www.google.com/maps/dir/")

# Calendar export
CALENDAR_PRODID = os.getenv("CALENDAR_PRODID", "-//Store Operations//Route Planning//EN")
CALENDAR_UID_DOMAIN = os.getenv("CALENDAR_UID_DOMAIN", "routeplan.local")
