import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from pytz import UTC

from billable.config import settings
from billable.exceptions import get_user_exception

logger = logging.getLogger(__name__)

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login/")

secret_key = settings.SECRET_KEY
algorithm = settings.ALGORITHM

Clock = Callable[[], datetime]


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


ADMINISTRATIVE_ROLES = {Role.ADMIN.value, Role.MANAGER.value}


class Actor(BaseModel):
    """The authenticated caller: which employee, acting in which role."""
    employee_id: str
    role: str = Role.EMPLOYEE.value

    @property
    def is_administrative(self) -> bool:
        return self.role in ADMINISTRATIVE_ROLES


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read a naive datetime as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def get_clock() -> Clock:
    """FastAPI dependency for the server clock; overridden in tests."""
    return utc_now


def create_access_token(payload: Dict[str, Any], expiry: timedelta):
    data_to_encode = {"data": payload}
    expiry_delta = datetime.now(UTC) + expiry
    data_to_encode.update({"exp": expiry_delta})
    encoded_data: str = jwt.encode(data_to_encode, secret_key, algorithm)

    return encoded_data


async def get_current_user(token: str = Depends(oauth2_bearer)) -> Actor:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        data = payload.get("data")

        if data is None:
            raise HTTPException(status_code=401, detail="Invalid token data.")

        employee_id = data.get("sub")
        if employee_id is None:
            raise get_user_exception()

        role = str(data.get("role", Role.EMPLOYEE.value)).upper()
        if role not in Role.__members__:
            raise HTTPException(status_code=401, detail="Unknown role.")

        return Actor(employee_id=employee_id, role=role)

    except JWTError as e:
        logger.warning("JWT error: %s", e)
        raise HTTPException(status_code=401, detail="JWT Error - could not validate user.")
