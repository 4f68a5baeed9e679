# backend/auth.py
import logging
from functools import wraps

from flask import g, request, session

from errors import InvalidCredentials, SignInRequired, Unauthorized
from models import db, User

logger = logging.getLogger(__name__)

_UNRESOLVED = object()


def authenticate(identifier, password):
    """Return the id of the user matching ``identifier`` (email or username).

    Unknown identifiers and wrong passwords raise the same InvalidCredentials.
    """
    user = User.find_by_login(identifier)
    if user is None or not password or not user.check_password(password):
        logger.warning("Failed sign-in for %r", identifier)
        raise InvalidCredentials()
    return user.id


class RequestContext:
    """Identity for a single request, built over the signed session cookie."""

    def __init__(self, state, url=None, method="GET"):
        self.state = state
        self.url = url
        self.method = method
        self._user = _UNRESOLVED

    @property
    def current_user(self):
        # one lookup per request, a missing user is cached too
        if self._user is _UNRESOLVED:
            user_id = self.state.get("user_id")
            self._user = db.session.get(User, user_id) if user_id else None
        return self._user

    @property
    def is_admin(self):
        user = self.current_user
        return bool(user and user.admin)

    def sign_in(self, user):
        self.state["user_id"] = user.id
        self._user = user

    def sign_out(self):
        self.state.pop("user_id", None)
        self._user = None

    def remember_url(self):
        # only pages that can be revisited with a plain GET after sign-in
        if self.url and self.method == "GET":
            self.state["intended_url"] = self.url

    def pop_intended_url(self):
        return self.state.pop("intended_url", None)


def require_signed_in(ctx):
    if ctx.current_user is None:
        ctx.remember_url()
        logger.warning("Sign-in required for %s", ctx.url)
        raise SignInRequired()


def require_admin(ctx):
    if not ctx.is_admin:
        logger.warning("Non-admin access to %s", ctx.url)
        raise Unauthorized()


def require_owner(ctx, target_user_id):
    require_signed_in(ctx)
    if ctx.current_user.id != target_user_id:
        logger.warning("User %s tried to modify user %s", ctx.current_user.id, target_user_id)
        raise Unauthorized()


def current_context():
    if "request_context" not in g:
        g.request_context = RequestContext(session, request.url, request.method)
    return g.request_context


def with_context(view):
    """Pass the request's RequestContext to the view as its first argument."""
    @wraps(view)
    def decorated_function(*args, **kwargs):
        return view(current_context(), *args, **kwargs)
    return decorated_function
