"""Signed, time-limited identity tokens."""

from calendar import timegm
from datetime import datetime, timedelta, timezone

import structlog
from jose import JWTError, jwt

log = structlog.get_logger(__name__)


def _timestamp(moment):
    return timegm(moment.utctimetuple())


class TokenIssuer:
    """Issues and verifies JWTs whose subject is a user id.

    Nothing is stored: a token is valid when its signature matches and the
    verification clock is still before ``exp``. Issuer and audience claims
    are only enforced when the deployment turns the matching flag on.
    """

    def __init__(self, secret, expiry_minutes, algorithm='HS256', issuer=None, audience=None,
                 verify_issuer=False, verify_audience=False):
        if not secret:
            raise ValueError('A token signing secret is required.')
        if expiry_minutes <= 0:
            raise ValueError('Token expiry must be a positive number of minutes.')
        if verify_issuer and not issuer:
            raise ValueError('Issuer verification is enabled but no issuer is configured.')
        if verify_audience and not audience:
            raise ValueError('Audience verification is enabled but no audience is configured.')
        self.secret = secret
        self.expiry = timedelta(minutes=expiry_minutes)
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.verify_issuer = verify_issuer
        self.verify_audience = verify_audience

    @classmethod
    def from_config(cls, config):
        return cls(
            secret=config['JWT_SECRET'],
            expiry_minutes=config['JWT_EXPIRY_MINUTES'],
            algorithm=config['JWT_ALGORITHM'],
            issuer=config.get('JWT_ISSUER'),
            audience=config.get('JWT_AUDIENCE'),
            verify_issuer=config.get('JWT_VERIFY_ISSUER', False),
            verify_audience=config.get('JWT_VERIFY_AUDIENCE', False),
        )

    def issue(self, user_id, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {
            'sub': str(user_id),
            'iat': _timestamp(now),
            'exp': _timestamp(now + self.expiry),
        }
        if self.issuer:
            claims['iss'] = self.issuer
        if self.audience:
            claims['aud'] = self.audience
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token, now: datetime | None = None) -> str | None:
        """Return the token's subject, or None when the token is not valid at ``now``."""
        options = {
            # exp is checked below against the supplied clock. jose turns
            # verify_exp back on when require_exp is set, so neither is passed.
            'verify_exp': False,
            'verify_aud': self.verify_audience,
            'verify_iss': self.verify_issuer,
        }
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options=options,
                audience=self.audience if self.verify_audience else None,
                issuer=self.issuer if self.verify_issuer else None,
            )
        except JWTError as exc:
            log.info('token_rejected', reason=str(exc))
            return None

        subject = claims.get('sub')
        expires_at = claims.get('exp')
        if not isinstance(subject, str) or not subject:
            log.info('token_rejected', reason='missing sub claim')
            return None
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            log.info('token_rejected', reason='missing or malformed exp claim')
            return None
        now = now or datetime.now(timezone.utc)
        if _timestamp(now) >= expires_at:
            log.info('token_rejected', reason='expired', subject=subject)
            return None
        return subject
