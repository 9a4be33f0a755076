"""Authorization consent requests.

Parses the query string of an authorization request and builds the redirect
sent back to the client once the user approves or denies it. This is a
simulated exchange: the issued code is opaque and random, and there is no
token endpoint behind it.
"""

import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

CODE_PREFIX = "pf_code_"
CHALLENGE_METHODS = ("S256", "plain")


class AuthorizationRequestError(ValueError):
    """Malformed authorization request.

    error is the OAuth error code ("invalid_request" or
    "unsupported_response_type").
    """

    def __init__(self, error: str, description: str):
        self.error = error
        self.description = description
        super().__init__(f"{error}: {description}")


@dataclass(frozen=True)
class AuthorizationRequest:
    client_id: str
    redirect_uri: str
    response_type: str = "code"
    scopes: tuple[str, ...] = field(default_factory=tuple)
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None

    @property
    def client_origin(self) -> str:
        url = httpx.URL(self.redirect_uri)
        return f"{url.scheme}://{url.netloc.decode('ascii')}"


def parse_authorization_request(query: str | Mapping[str, str]) -> AuthorizationRequest:
    """Validate authorization request parameters.

    Args:
        query: Raw query string ("client_id=...&redirect_uri=...") or a mapping

    Raises:
        AuthorizationRequestError: If a required parameter is missing or invalid
    """
    params = httpx.QueryParams(query)

    client_id = params.get("client_id")
    redirect_uri = params.get("redirect_uri")
    response_type = params.get("response_type")
    if not client_id or not redirect_uri or not response_type:
        raise AuthorizationRequestError(
            "invalid_request", "client_id, redirect_uri and response_type are required"
        )

    try:
        url = httpx.URL(redirect_uri)
    except httpx.InvalidURL as e:
        raise AuthorizationRequestError("invalid_request", f"invalid redirect_uri: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise AuthorizationRequestError("invalid_request", "redirect_uri must be an absolute http(s) URL")

    if response_type != "code":
        raise AuthorizationRequestError("unsupported_response_type", f"response_type {response_type!r}")

    challenge = params.get("code_challenge") or None
    method = params.get("code_challenge_method") or None
    if challenge is None and method is not None:
        raise AuthorizationRequestError("invalid_request", "code_challenge_method without code_challenge")
    if challenge is not None:
        method = method or "plain"
        if method not in CHALLENGE_METHODS:
            raise AuthorizationRequestError("invalid_request", f"unsupported code_challenge_method {method!r}")

    return AuthorizationRequest(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        scopes=tuple((params.get("scope") or "").split()),
        state=params.get("state") or None,
        code_challenge=challenge,
        code_challenge_method=method,
    )


def _redirect(request: AuthorizationRequest, params: dict[str, str]) -> str:
    if request.state:
        params["state"] = request.state
    return str(httpx.URL(request.redirect_uri).copy_merge_params(params))


def generate_code() -> str:
    return CODE_PREFIX + secrets.token_urlsafe(24)


def approve(request: AuthorizationRequest) -> str:
    """Redirect URL carrying a freshly generated code and the original state."""
    return _redirect(request, {"code": generate_code()})


def deny(request: AuthorizationRequest) -> str:
    """Redirect URL reporting that the user refused access."""
    return _redirect(
        request,
        {"error": "access_denied", "error_description": "The user denied the authorization request"},
    )
