from datetime import date, datetime, timedelta, timezone

import pytz
from jose import jwt

from fitplan.config import SECRET_KEY, ALGORITHM

# --- JWT Config ---
ACCESS_TOKEN_EXPIRE_MINUTES = 1440  # Session duration


# Token Logic
def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({'exp': expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises jose.JWTError on a bad or expired token."""
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


# --- Local time ---
def get_user_local_time(profile) -> datetime:
    """
    Returns the current datetime in the profile's timezone (naive).
    Defaults to UTC if timezone is invalid or not set.
    """
    tz_name = getattr(profile, 'timezone', None) or 'UTC'
    try:
        user_tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        user_tz = pytz.UTC

    server_now = datetime.now(pytz.UTC)
    return server_now.astimezone(user_tz).replace(tzinfo=None)


def get_user_today(profile) -> date:
    return get_user_local_time(profile).date()


def week_start_sunday(day: date) -> date:
    # isoweekday: Monday=1 .. Sunday=7
    return day - timedelta(days=day.isoweekday() % 7)
