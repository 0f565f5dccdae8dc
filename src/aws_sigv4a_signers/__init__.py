"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

AWS SigV4A Signers provides stand-alone asymmetric (ECDSA P-256) request
signing for use with HTTP tools and proxies, including multi-region and
presigned requests.
"""

from __future__ import annotations

from ._clock import FixedClock, SystemClock
from ._http import URI, AWSRequest, Field, Fields
from ._identity import AWSCredentialIdentity, StaticCredentialsProvider
from ._version import __version__
from .keys import (
    derive_private_key,
    derive_private_scalar,
    derive_public_key,
    verify_signature,
)
from .signers import (
    PayloadSigningMode,
    SignatureLocation,
    SigV4ASigner,
    SigV4ASigningProperties,
)

__license__ = "Apache-2.0"
__version__ = __version__

__all__ = (
    "AWSCredentialIdentity",
    "AWSRequest",
    "Field",
    "Fields",
    "FixedClock",
    "PayloadSigningMode",
    "SignatureLocation",
    "SigV4ASigner",
    "SigV4ASigningProperties",
    "StaticCredentialsProvider",
    "SystemClock",
    "URI",
    "derive_private_key",
    "derive_private_scalar",
    "derive_public_key",
    "verify_signature",
)
