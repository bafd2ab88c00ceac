"""authcode-grant - OAuth 2.0 authorization code redemption."""

from authcode_grant.cache import CacheCoordinator, TTLCacheBackend
from authcode_grant.exceptions import (
    AuthCodeGrantError,
    CacheError,
    ConfigurationError,
    InvalidGrantError,
    OAuthError,
    StoreError,
    UnsupportedGrantTypeError,
    UserIdNotFoundError,
)
from authcode_grant.grant import AUTHORIZATION_CODE, AuthorizationCodeGrant
from authcode_grant.hooks import GrantHooks, HookRunner, TokenRevocationContext
from authcode_grant.issuer import OpaqueTokenIssuer
from authcode_grant.models import (
    AccessToken,
    AppPolicy,
    AuthorizationCode,
    AuthorizedUser,
    CodeLookup,
    CodeState,
    FailureCause,
    GrantFailure,
    GrantOutcome,
    TokenRequest,
    TokenResponse,
    ValidatedGrant,
)
from authcode_grant.pkce import PKCEVerifier, create_code_challenge, verify_pkce
from authcode_grant.registry import GrantHandlerRegistry
from authcode_grant.revocation import RevocationCascade
from authcode_grant.settings import AuthorizationCodeGrantSettings
from authcode_grant.validator import MIN_VALIDITY, CodeValidator

__version__ = "0.1.0"

__all__ = [
    "AUTHORIZATION_CODE",
    "MIN_VALIDITY",
    "AccessToken",
    "AppPolicy",
    "AuthCodeGrantError",
    "AuthorizationCode",
    "AuthorizationCodeGrant",
    "AuthorizationCodeGrantSettings",
    "AuthorizedUser",
    "CacheCoordinator",
    "CacheError",
    "CodeLookup",
    "CodeState",
    "CodeValidator",
    "ConfigurationError",
    "FailureCause",
    "GrantFailure",
    "GrantHandlerRegistry",
    "GrantHooks",
    "GrantOutcome",
    "HookRunner",
    "InvalidGrantError",
    "OAuthError",
    "OpaqueTokenIssuer",
    "PKCEVerifier",
    "RevocationCascade",
    "StoreError",
    "TTLCacheBackend",
    "TokenRequest",
    "TokenResponse",
    "TokenRevocationContext",
    "UnsupportedGrantTypeError",
    "UserIdNotFoundError",
    "ValidatedGrant",
    "__version__",
    "create_code_challenge",
    "verify_pkce",
]
