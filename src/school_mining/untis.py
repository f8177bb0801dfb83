"""WebUntis JSON-RPC client.

Covers the calls a collection run needs: authenticate, list classes,
fetch a class timetable for a date range, logout. Every request carries a
finite timeout; failures surface as AuthError (login) or ProviderFetchError.

Endpoint: POST <server>/WebUntis/jsonrpc.do?school=<school>
Session: the sessionId returned by `authenticate` travels as the
JSESSIONID cookie on all later calls.
"""

from datetime import date
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.school_mining.errors import AuthError, ProviderFetchError
from src.school_mining.logging import get_logger

log = get_logger(__name__)

CLIENT_NAME = "school-mining"
JSONRPC_PATH = "/WebUntis/jsonrpc.do"

# Element types for getTimetable
ELEMENT_CLASS = 1

_ELEMENT_FIELDS = ["id", "name"]


class ElementRef(BaseModel):
    """Class, teacher, subject or room attached to a period."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""


class ClassRef(ElementRef):
    """A class (Klasse) as returned by getKlassen."""

    long_name: str = Field(default="", alias="longName")


class Period(BaseModel):
    """One timetable period as returned by getTimetable.

    `code` is absent for regular lessons, otherwise "irregular" or
    "cancelled".
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    day: int | None = Field(default=None, alias="date")  # YYYYMMDD
    start_time: int | None = Field(default=None, alias="startTime")  # HHMM
    end_time: int | None = Field(default=None, alias="endTime")
    classes: list[ElementRef] = Field(default_factory=list, alias="kl")
    teachers: list[ElementRef] = Field(default_factory=list, alias="te")
    subjects: list[ElementRef] = Field(default_factory=list, alias="su")
    rooms: list[ElementRef] = Field(default_factory=list, alias="ro")
    code: str | None = None
    lesson_text: str = Field(default="", alias="lstext")
    substitution_text: str | None = Field(default=None, alias="substText")


def untis_date(day: date) -> int:
    """WebUntis encodes dates as YYYYMMDD integers."""
    return day.year * 10000 + day.month * 100 + day.day


def endpoint_url(server: str) -> str:
    """Build the JSON-RPC URL from a bare host or a full URL."""
    url = server.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    if not url.endswith("jsonrpc.do"):
        url = f"{url}{JSONRPC_PATH}"
    return url


class UntisClient:
    """HTTP client for the WebUntis JSON-RPC API.

    Use UntisClient.login() to get an authenticated client. The client is a
    context manager and logs out when the block exits.
    """

    def __init__(
        self,
        server: str,
        school: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = endpoint_url(server)
        self.school = school
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session_id: str | None = None
        self._request_id = 0

    @classmethod
    def login(
        cls,
        server: str,
        school: str,
        user: str,
        password: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> "UntisClient":
        """Create a client and authenticate it.

        Raises:
            AuthError: If the server rejects the login or cannot be reached.
        """
        client = cls(server, school, timeout=timeout, session=session)
        client.authenticate(user, password)
        return client

    @property
    def authenticated(self) -> bool:
        return self._session_id is not None

    def authenticate(self, user: str, password: str) -> None:
        log.info("authentication_started", url=self.url, school=self.school)
        try:
            result = self._call(
                "authenticate",
                {"user": user, "password": password, "client": CLIENT_NAME},
            )
        except ProviderFetchError as e:
            raise AuthError(str(e)) from e

        session_id = result.get("sessionId") if isinstance(result, dict) else None
        if not session_id:
            raise AuthError("authenticate returned no session id")

        self._session_id = session_id
        self._session.cookies.set("JSESSIONID", session_id)
        log.info("authentication_succeeded", school=self.school)

    def classes(self) -> list[ClassRef]:
        """List all classes of the school."""
        result = self._call("getKlassen")
        try:
            return [ClassRef.model_validate(item) for item in result or []]
        except (ValidationError, TypeError) as e:
            raise ProviderFetchError(f"getKlassen returned unexpected data: {e}") from e

    def lessons(self, class_id: int, start: date, end: date) -> list[Period]:
        """Fetch the timetable of one class between `start` and `end` inclusive."""
        options = {
            "element": {"id": class_id, "type": ELEMENT_CLASS},
            "startDate": untis_date(start),
            "endDate": untis_date(end),
            "showLsText": True,
            "showSubstText": True,
            "klasseFields": _ELEMENT_FIELDS,
            "teacherFields": _ELEMENT_FIELDS,
            "subjectFields": _ELEMENT_FIELDS,
            "roomFields": _ELEMENT_FIELDS,
        }
        result = self._call("getTimetable", {"options": options})
        try:
            return [Period.model_validate(item) for item in result or []]
        except (ValidationError, TypeError) as e:
            raise ProviderFetchError(
                f"getTimetable returned unexpected data for class {class_id}: {e}"
            ) from e

    def logout(self) -> None:
        if self._session_id is None:
            return
        try:
            self._call("logout")
        finally:
            self._session_id = None
            self._session.cookies.clear()
        log.info("logout_succeeded")

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "UntisClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.logout()
        except ProviderFetchError as e:
            log.warning("logout_failed", error=str(e))
        finally:
            self.close()

    def _call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        self._request_id += 1
        payload = {
            "id": str(self._request_id),
            "method": method,
            "params": params or {},
            "jsonrpc": "2.0",
        }
        log.debug("untis_request", method=method)
        try:
            response = self._session.post(
                self.url,
                params={"school": self.school},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise ProviderFetchError(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise ProviderFetchError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise ProviderFetchError(f"{method} returned unexpected data")

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                message = f"{error.get('message', 'unknown error')} (code {error.get('code')})"
            else:
                message = str(error)
            raise ProviderFetchError(f"{method} failed: {message}")

        return body.get("result")
