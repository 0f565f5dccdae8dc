"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from .interfaces.identity import Identity


@dataclass(kw_only=True)
class AWSCredentialIdentity(Identity):
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: datetime | None = None

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return self.expiration < datetime.now(UTC)

    @property
    def is_anonymous(self) -> bool:
        """Whether the identity carries no keys and must not be used to sign."""
        return not self.access_key_id and not self.secret_access_key


class StaticCredentialsProvider:
    """Credentials provider that always returns the same identity."""

    def __init__(self, identity: AWSCredentialIdentity | None = None):
        self._identity = identity

    def get_credentials(self) -> AWSCredentialIdentity | None:
        return self._identity
