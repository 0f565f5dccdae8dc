"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .._identity import AWSCredentialIdentity


@runtime_checkable
class Identity(Protocol):
    """An entity that may be authenticated against a service."""

    expiration: datetime | None

    @property
    def is_expired(self) -> bool: ...


@runtime_checkable
class AWSCredentialsIdentity(Identity, Protocol):
    access_key_id: str
    secret_access_key: str
    session_token: str | None


class CredentialsProvider(Protocol):
    """Source of credentials, queried once per signing call.

    Returning ``None`` or an identity without keys means the request should be
    left unsigned.
    """

    def get_credentials(self) -> "AWSCredentialIdentity | None": ...
