# datavista_app/services/identity.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from flask import current_app, session
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from ..extensions import db
from ..models.user import User

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class SessionState:
    user: Optional[User]
    loading: bool = False
    event: str = ""                      # "signed_in" | "signed_out"
    previous_user_id: Optional[int] = None


Listener = Callable[[SessionState], None]


class IdentityProvider:
    """
    Sign-in/out on top of Flask's signed session cookie. Components that
    need the current identity get it from here, and can subscribe to
    sign-in / sign-out transitions.
    """

    def __init__(self, google_client_id: str = "", admin_emails=(), verifier=None):
        self.google_client_id = google_client_id
        self.admin_emails = {e.lower() for e in admin_emails or ()}
        self.verifier = verifier or google_id_token.verify_oauth2_token
        self._listeners: list[Listener] = []

    # --- subscription --------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                current_app.logger.exception("Identity listener failed")

    # --- session -------------------------------------------------------
    def _start_session(self, u: User) -> None:
        session["user"] = {
            "id": u.id, "name": u.name, "email": u.email, "is_admin": bool(u.is_admin),
        }
        self._notify(SessionState(user=u, event="signed_in"))

    def current_user(self) -> Optional[User]:
        data = session.get("user")
        if not data:
            return None
        email = data.get("email")
        if not email:
            return None
        return User.query.filter_by(email=email).first()

    def state(self) -> SessionState:
        return SessionState(user=self.current_user())

    # --- operations ----------------------------------------------------
    def sign_in_with_credentials(self, email: str, password: str) -> Optional[User]:
        u = User.query.filter_by(email=(email or "").strip().lower()).first()
        if not u or not u.active or not u.check_password(password):
            return None
        self._start_session(u)
        return u

    def sign_up(self, name: str, email: str, password: str) -> User:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValueError("Email and password are required.")
        if User.query.filter_by(email=email).first():
            raise ValueError("Email is already registered.")
        u = User(name=(name or "").strip() or email.split("@")[0], email=email,
                 is_admin=email in self.admin_emails)
        u.set_password(password)
        db.session.add(u); db.session.commit()
        self._start_session(u)
        return u

    def verify_google_token(self, token: str) -> Optional[dict]:
        """Signature, audience and expiry are checked by google-auth; the rest here."""
        if not token or not self.google_client_id:
            return None
        try:
            claims = self.verifier(token, google_requests.Request(), self.google_client_id)
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            current_app.logger.warning("Google token verification failed: %s", e)
            return None
        if not isinstance(claims, dict):
            return None
        if claims.get("aud") != self.google_client_id or claims.get("iss") not in GOOGLE_ISSUERS:
            return None
        if not claims.get("sub") or not claims.get("email"):
            return None
        if str(claims.get("email_verified", "true")).lower() != "true":
            return None
        return claims

    def sign_in_with_federated(self, token: str) -> Optional[User]:
        claims = self.verify_google_token(token)
        if not claims:
            return None
        email = claims["email"].lower()
        u = User.query.filter_by(google_sub=claims["sub"]).first() \
            or User.query.filter_by(email=email).first()
        if u is None:
            u = User(name=claims.get("name") or email.split("@")[0], email=email,
                     is_admin=email in self.admin_emails)
            db.session.add(u)
        if not u.active:
            return None
        u.google_sub = claims["sub"]
        db.session.commit()
        self._start_session(u)
        return u

    def sign_out(self) -> None:
        u = self.current_user()
        session.clear()
        self._notify(SessionState(user=None, event="signed_out", previous_user_id=u.id if u else None))
        if u is not None:
            current_app.logger.info("User %s signed out", u.id)


def _audit_listener(state: SessionState) -> None:
    from ..models.audit import record
    if state.event == "signed_in" and state.user is not None:
        record(state.user.id, "login", ref=f"user:{state.user.id}")
    elif state.event == "signed_out" and state.previous_user_id:
        record(state.previous_user_id, "logout", ref=f"user:{state.previous_user_id}")


def init_identity(app) -> None:
    provider = IdentityProvider(
        google_client_id=app.config.get("GOOGLE_CLIENT_ID", ""),
        admin_emails=app.config.get("ADMIN_EMAILS") or (),
    )
    provider.subscribe(_audit_listener)
    app.extensions["identity"] = provider


def get_identity() -> IdentityProvider:
    provider = current_app.extensions.get("identity")
    if provider is None:
        init_identity(current_app)
        provider = current_app.extensions["identity"]
    return provider


def current_user() -> Optional[User]:
    return get_identity().current_user()
