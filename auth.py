"""
Authentication backends.

``SupabaseAuth`` forwards to the hosted auth REST API; ``LocalAuth`` keeps
users and sessions in the local table store with bcrypt password hashes.
"""

import secrets
import logging
from dataclasses import dataclass

import bcrypt
import requests

import config
from data_client import DataClient, LocalTableStore
from exceptions import AuthError, UserAlreadyExistsError, DatabaseError

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: str
    full_name: str = ""


@dataclass
class AuthSession:
    access_token: str
    user: AuthUser


def _validate_credentials(email: str, password: str):
    if not email or "@" not in email:
        raise ValueError("A valid email is required.")
    if not password or len(password) < 6:
        raise ValueError("Password must have at least 6 characters.")


class SupabaseAuth:
    def __init__(self, url: str, anon_key: str, timeout: float = config.REQUEST_TIMEOUT, session: requests.Session = None):
        self.base_url = url.rstrip("/") + "/auth/v1"
        self.anon_key = anon_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: dict = None, token: str = None, params: dict = None) -> dict:
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self.session.post(f"{self.base_url}{path}", json=payload or {}, params=params,
                                         headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DatabaseError(f"Auth service unreachable: {e}", e) from e
        if response.status_code in (400, 401, 403, 422):
            message = ""
            try:
                body = response.json()
                message = body.get("msg") or body.get("error_description") or body.get("message") or ""
            except ValueError:
                pass
            if "already registered" in message.lower():
                raise UserAlreadyExistsError((payload or {}).get("email", ""))
            raise AuthError(message or "Invalid credentials")
        if not response.ok:
            raise DatabaseError(f"Auth service error: {response.status_code}")
        return response.json() if response.content else {}

    @staticmethod
    def _user_from(data: dict) -> AuthUser:
        metadata = data.get("user_metadata") or {}
        return AuthUser(id=data["id"], email=data.get("email", ""), full_name=metadata.get("full_name", ""))

    def sign_up(self, email: str, password: str, full_name: str = "") -> AuthSession:
        _validate_credentials(email, password)
        data = self._post("/signup", {"email": email, "password": password, "data": {"full_name": full_name}})
        user = self._user_from(data.get("user") or data)
        return AuthSession(access_token=data.get("access_token", ""), user=user)

    def sign_in(self, email: str, password: str) -> AuthSession:
        data = self._post("/token", {"email": email, "password": password}, params={"grant_type": "password"})
        return AuthSession(access_token=data["access_token"], user=self._user_from(data["user"]))

    def get_user(self, access_token: str) -> AuthUser:
        if not access_token:
            raise AuthError("Missing access token")
        try:
            response = self.session.get(f"{self.base_url}/user", timeout=self.timeout,
                                        headers={"apikey": self.anon_key, "Authorization": f"Bearer {access_token}"})
        except requests.exceptions.RequestException as e:
            raise DatabaseError(f"Auth service unreachable: {e}", e) from e
        if response.status_code != 200:
            raise AuthError()
        return self._user_from(response.json())

    def sign_out(self, access_token: str):
        self._post("/logout", token=access_token)


class LocalAuth:
    def __init__(self, data_client: DataClient):
        self.db = data_client

    def sign_up(self, email: str, password: str, full_name: str = "") -> AuthSession:
        _validate_credentials(email, password)
        email = email.strip().lower()
        if self.db.select_one("users", {"email": email}):
            raise UserAlreadyExistsError(email)
        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        user_row = self.db.insert("users", {"email": email, "password_hash": password_hash, "full_name": full_name})[0]
        self.db.insert("profiles", {"id": user_row["id"], "full_name": full_name, "avatar_url": None})
        logger.info(f"Registered local user {email}")
        return self._open_session(user_row)

    def sign_in(self, email: str, password: str) -> AuthSession:
        user_row = self.db.select_one("users", {"email": (email or "").strip().lower()})
        if not user_row or not bcrypt.checkpw((password or "").encode("utf-8"), user_row["password_hash"].encode("utf-8")):
            raise AuthError("Invalid email or password")
        return self._open_session(user_row)

    def _open_session(self, user_row: dict) -> AuthSession:
        token = secrets.token_urlsafe(32)
        self.db.insert("sessions", {"token": token, "user_id": user_row["id"]})
        return AuthSession(access_token=token, user=self._user_from(user_row))

    @staticmethod
    def _user_from(user_row: dict) -> AuthUser:
        return AuthUser(id=user_row["id"], email=user_row["email"], full_name=user_row.get("full_name") or "")

    def get_user(self, access_token: str) -> AuthUser:
        if not access_token:
            raise AuthError("Missing access token")
        session = self.db.select_one("sessions", {"token": access_token})
        if not session:
            raise AuthError()
        user_row = self.db.select_one("users", {"id": session["user_id"]})
        if not user_row:
            raise AuthError()
        return self._user_from(user_row)

    def sign_out(self, access_token: str):
        self.db.delete("sessions", {"token": access_token})


def create_auth_service(data_client: DataClient):
    if isinstance(data_client, LocalTableStore) or not config.SUPABASE_URL:
        return LocalAuth(data_client)
    return SupabaseAuth(config.SUPABASE_URL, config.SUPABASE_ANON_KEY or config.SUPABASE_SERVICE_ROLE_KEY)
