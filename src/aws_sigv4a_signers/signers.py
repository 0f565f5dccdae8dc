"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import io
import logging
import warnings
from collections.abc import Iterable
from datetime import UTC
from enum import Enum
from hashlib import sha256
from typing import Required, TypedDict
from urllib.parse import quote, unquote

from ._clock import SystemClock
from ._http import URI, AWSRequest, Field
from ._identity import AWSCredentialIdentity
from .exceptions import (
    AWSSDKWarning,
    MissingExpectedParameterException,
    MissingRequiredComponentException,
)
from .interfaces.clock import Clock
from .interfaces.identity import AWSCredentialsIdentity as _AWSCredentialsIdentity
from .interfaces.identity import CredentialsProvider
from .interfaces.io import Seekable
from .keys import SIGV4A_ALGORITHM, derive_private_key, sign_string

logger = logging.getLogger(__name__)

HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = ("authorization",)
QUERY_SIGNED_HEADERS: tuple[str, ...] = ("host", "x-amz-content-sha256")
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

# Seconds are always written as "00".
SIGV4A_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M00Z"
UNSIGNED_PAYLOAD: str = "UNSIGNED-PAYLOAD"
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
DEFAULT_EXPIRATION: int = 5

AUTHORIZATION_HEADER = "Authorization"
DATE_HEADER = "x-amz-date"
CONTENT_SHA256_HEADER = "x-amz-content-sha256"
SECURITY_TOKEN_HEADER = "x-amz-security-token"
REGION_SET_HEADER = "x-amz-region-set"


class PayloadSigningMode(Enum):
    """How the payload-hash line of the canonical request is produced."""

    BODY_SHA256 = "body-sha256"
    EMPTY_SHA256 = "empty-sha256"
    UNSIGNED = "unsigned"


class SignatureLocation(Enum):
    """Where the signature and its metadata are written on the request."""

    HEADERS = "headers"
    QUERY_STRING = "query-string"


class SigV4ASigningProperties(TypedDict, total=False):
    service: Required[str]
    region_set: Required[str]
    date: str
    expires: int
    payload_signing: PayloadSigningMode
    signature_location: SignatureLocation
    uri_encode_path: bool


class SigV4ASigner:
    """
    Request signer for applying the AWS Signature Version 4A algorithm.

    One signer is bound to a service, a default region set and a credentials
    provider. Each call pulls fresh credentials, re-derives the ECDSA key and
    updates the supplied request in place.
    """

    def __init__(
        self,
        *,
        service: str,
        region_set: str,
        credentials_provider: CredentialsProvider,
        clock: Clock | None = None,
        excluded_headers: Iterable[str] = (),
        signature_location: SignatureLocation = SignatureLocation.HEADERS,
        expiration: int | None = None,
        uri_encode_path: bool = True,
    ):
        if expiration is not None and expiration < 0:
            raise ValueError(
                f"Expiration must be a non-negative number of seconds, got {expiration}."
            )
        self._service = service
        self._region_set = region_set
        self._credentials_provider = credentials_provider
        self._clock = clock if clock is not None else SystemClock()
        self._excluded_headers = frozenset(
            name.lower() for name in (*HEADERS_EXCLUDED_FROM_SIGNING, *excluded_headers)
        )
        self._signature_location = signature_location
        self._expiration = expiration or DEFAULT_EXPIRATION
        self._uri_encode_path = uri_encode_path

    def sign(
        self,
        request: AWSRequest,
        *,
        sign_body: bool = False,
        override_region: str = "",
    ) -> AWSRequest:
        """Sign the request, hashing its body when ``sign_body`` is set.

        Without ``sign_body`` the payload is signed as the empty string.

        :param request: An AWSRequest to update with authentication material.
        :param sign_body: Whether to hash the request body into the signature.
        :param override_region: Region set used instead of the configured one
            when non-empty.
        """
        payload_signing = (
            PayloadSigningMode.BODY_SHA256
            if sign_body
            else PayloadSigningMode.EMPTY_SHA256
        )
        return self._sign(
            request=request,
            payload_signing=payload_signing,
            override_region=override_region,
        )

    def sign_empty_payload(
        self, request: AWSRequest, *, override_region: str = ""
    ) -> AWSRequest:
        """Sign the request with the hash of the empty string as its payload hash."""
        return self._sign(
            request=request,
            payload_signing=PayloadSigningMode.EMPTY_SHA256,
            override_region=override_region,
        )

    def sign_unsigned_payload(
        self, request: AWSRequest, *, override_region: str = ""
    ) -> AWSRequest:
        """Sign the request with ``UNSIGNED-PAYLOAD`` as its payload hash.

        Used for streamed bodies whose content is not known up front.
        """
        return self._sign(
            request=request,
            payload_signing=PayloadSigningMode.UNSIGNED,
            override_region=override_region,
        )

    def _sign(
        self,
        *,
        request: AWSRequest,
        payload_signing: PayloadSigningMode,
        override_region: str,
    ) -> AWSRequest:
        identity = self._resolve_identity()
        if identity is None:
            logger.debug("Anonymous credentials, skipping SigV4A signing.")
            return request

        self._validate_request(request=request)
        signing_properties = self._generate_signing_properties(
            payload_signing=payload_signing, override_region=override_region
        )
        private_key = derive_private_key(
            identity.access_key_id, identity.secret_access_key
        )
        payload_hash = self._compute_payload_hash(
            request=request, signing_properties=signing_properties
        )
        credential = f"{identity.access_key_id}/{self._scope(signing_properties)}"

        if signing_properties["signature_location"] is SignatureLocation.QUERY_STRING:
            self._apply_query_parameters(
                request=request,
                signing_properties=signing_properties,
                identity=identity,
                credential=credential,
            )
        else:
            self._apply_required_fields(
                request=request,
                signing_properties=signing_properties,
                identity=identity,
                payload_hash=payload_hash,
            )

        # Construct core signing components
        canonical_request = self.canonical_request(
            signing_properties=signing_properties,
            request=request,
            payload_hash=payload_hash,
        )
        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request,
            signing_properties=signing_properties,
        )
        signature = sign_string(private_key, string_to_sign)
        logger.debug("Calculating signature using SigV4A auth.")
        logger.debug("CanonicalRequest:\n%s", canonical_request)
        logger.debug("StringToSign:\n%s", string_to_sign)
        logger.debug("Signature:\n%s", signature)

        if signing_properties["signature_location"] is SignatureLocation.QUERY_STRING:
            _, query = _split_path(request.destination)
            request.destination.query = (
                f"{self._format_canonical_query(query=query)}"
                f"&X-Amz-Signature={signature}"
            )
        else:
            signed_headers = self._normalize_signing_fields(
                request=request,
                signing_properties=signing_properties,
                payload_hash=payload_hash,
            )
            request.fields.set_field(
                self.generate_authorization_field(
                    credential=credential,
                    signed_headers=list(signed_headers.keys()),
                    signature=signature,
                )
            )
        return request

    def generate_authorization_field(
        self, *, credential: str, signed_headers: list[str], signature: str
    ) -> Field:
        """Generate the `Authorization` field.

        :param credential:
            Credential string for generating the Authorization header.
            Defined as:
                <access_key>/<date>/<service>/aws4_request
        :param signed_headers:
            A list of the field names used in signing.
        :param signature:
            Hex encoded ECDSA signature over the string to sign.
        """
        signed_headers_str = ";".join(signed_headers)
        auth_str = (
            f"{SIGV4A_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers_str}, Signature={signature}"
        )
        return Field(name=AUTHORIZATION_HEADER, values=[auth_str])

    def _resolve_identity(self) -> AWSCredentialIdentity | None:
        identity = self._credentials_provider.get_credentials()
        if identity is None:
            return None
        self._validate_identity(identity=identity)
        if identity.is_anonymous:
            return None
        return identity

    def _validate_identity(self, *, identity: AWSCredentialIdentity) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, _AWSCredentialsIdentity):
            raise ValueError(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        elif identity.is_expired:
            raise ValueError(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )

    def _validate_request(self, *, request: AWSRequest) -> None:
        if not request.method:
            raise MissingRequiredComponentException("Message is missing :method header")
        if request.destination.path is None:
            raise MissingRequiredComponentException("Message is missing :path header")

    def _generate_signing_properties(
        self, *, payload_signing: PayloadSigningMode, override_region: str
    ) -> SigV4ASigningProperties:
        signing_properties = SigV4ASigningProperties(
            service=self._service,
            region_set=override_region or self._region_set,
            date=self._clock.now().astimezone(UTC).strftime(SIGV4A_TIMESTAMP_FORMAT),
            payload_signing=payload_signing,
            signature_location=self._signature_location,
            uri_encode_path=self._uri_encode_path,
        )
        if self._signature_location is SignatureLocation.QUERY_STRING:
            signing_properties["expires"] = self._expiration
        return signing_properties

    def _apply_required_fields(
        self,
        *,
        request: AWSRequest,
        signing_properties: SigV4ASigningProperties,
        identity: AWSCredentialIdentity,
        payload_hash: str,
    ) -> None:
        assert "date" in signing_properties
        # Leftovers from an earlier signing attempt are always replaced.
        request.fields.remove_field(AUTHORIZATION_HEADER)
        request.fields.remove_field(SECURITY_TOKEN_HEADER)
        request.fields.set_field(
            Field(name=DATE_HEADER, values=[signing_properties["date"]])
        )
        request.fields.set_field(Field(name=CONTENT_SHA256_HEADER, values=[payload_hash]))
        if identity.session_token:
            request.fields.set_field(
                Field(name=SECURITY_TOKEN_HEADER, values=[identity.session_token])
            )
        request.fields.set_field(
            Field(name=REGION_SET_HEADER, values=[signing_properties["region_set"]])
        )

    def _apply_query_parameters(
        self,
        *,
        request: AWSRequest,
        signing_properties: SigV4ASigningProperties,
        identity: AWSCredentialIdentity,
        credential: str,
    ) -> None:
        assert "date" in signing_properties
        signed_headers = self._signed_query_headers()
        auth_params = [
            ("X-Amz-Algorithm", SIGV4A_ALGORITHM),
            ("X-Amz-Credential", credential),
            ("X-Amz-Date", signing_properties["date"]),
            ("X-Amz-Expires", str(signing_properties.get("expires", self._expiration))),
            ("X-Amz-Region-Set", signing_properties["region_set"]),
            ("X-Amz-SignedHeaders", ";".join(signed_headers)),
        ]
        if identity.session_token:
            auth_params.append(("X-Amz-Security-Token", identity.session_token))

        path, query = _split_path(request.destination)
        query_params = _parse_query(query)
        request.destination.path = path
        request.destination.query = self._encode_query_params(
            query_params + auth_params
        )

    def canonical_request(
        self,
        *,
        signing_properties: SigV4ASigningProperties,
        request: AWSRequest,
        payload_hash: str,
    ) -> str:
        """The canonical request is a standardized string laying out the components
        used in the SigV4A signing algorithm. This is useful to quickly compare inputs
        to find signature mismatches and unintended variances.

        The SigV4A canonical request is defined as:
            <HTTPMethod>\n
            <CanonicalURI>\n
            <CanonicalQueryString>\n
            <CanonicalHeaders>\n
            <SignedHeaders>\n
            <HashedPayload>

        :param signing_properties:
            SigV4ASigningProperties to define signing primitives such as
            the target service, region set, and date.
        :param request:
            An AWSRequest to use for generating a SigV4A signature.
        :param payload_hash:
            The hashed payload, the empty string hash, or ``UNSIGNED-PAYLOAD``.
        """
        self._validate_request(request=request)

        path, query = _split_path(request.destination)
        canonical_path = self._format_canonical_path(
            path=path, signing_properties=signing_properties
        )
        canonical_query = self._format_canonical_query(query=query)
        normalized_fields = self._normalize_signing_fields(
            request=request,
            signing_properties=signing_properties,
            payload_hash=payload_hash,
        )
        canonical_fields = self._format_canonical_fields(fields=normalized_fields)
        return (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{';'.join(normalized_fields)}\n"
            f"{payload_hash}"
        )

    def string_to_sign(
        self,
        *,
        canonical_request: str,
        signing_properties: SigV4ASigningProperties,
    ) -> str:
        """The string to sign concatenates the formal identifier of the signing
        algorithm, the signing DateTime, the credential scope, and a hash of the
        canonical request. Unlike SigV4, the scope carries no region.

            Algorithm \n
            RequestDateTime \n
            CredentialScope  \n
            HashedCanonicalRequest

        :param canonical_request:
            String generated from the `canonical_request` method.
        :param signing_properties:
            SigV4ASigningProperties to define signing primitives such as
            the target service, region set, and date.
        """
        date = signing_properties.get("date")
        if date is None:
            raise MissingExpectedParameterException(
                "Cannot generate string_to_sign without a valid date "
                f"in your signing_properties. Current value: {date}"
            )
        return (
            f"{SIGV4A_ALGORITHM}\n"
            f"{date}\n"
            f"{self._scope(signing_properties)}\n"
            f"{sha256(canonical_request.encode()).hexdigest()}"
        )

    def _scope(self, signing_properties: SigV4ASigningProperties) -> str:
        assert "date" in signing_properties
        formatted_date = signing_properties["date"][0:8]
        service = signing_properties["service"]
        # Scope format: <YYYYMMDD>/<AWS Service>/aws4_request
        return f"{formatted_date}/{service}/aws4_request"

    def _format_canonical_path(
        self, *, path: str, signing_properties: SigV4ASigningProperties
    ) -> str:
        if not path:
            path = "/"

        if signing_properties.get("uri_encode_path", True):
            normalized_path = _remove_dot_segments(path)
            return quote(string=normalized_path, safe="/%")
        else:
            return _remove_dot_segments(path, remove_consecutive_slashes=False)

    def _format_canonical_query(self, *, query: str | None) -> str:
        if not query:
            return ""
        return self._encode_query_params(_parse_query(query))

    def _encode_query_params(self, query_params: list[tuple[str, str]]) -> str:
        query_parts = (
            (quote(string=key, safe=""), quote(string=value, safe=""))
            for key, value in query_params
        )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def _normalize_signing_fields(
        self,
        *,
        request: AWSRequest,
        signing_properties: SigV4ASigningProperties,
        payload_hash: str,
    ) -> dict[str, str]:
        location = signing_properties.get("signature_location", self._signature_location)
        if location is SignatureLocation.QUERY_STRING:
            normalized_fields = {}
            for name in self._signed_query_headers():
                if name == CONTENT_SHA256_HEADER:
                    normalized_fields[name] = payload_hash
                elif name in request.fields:
                    normalized_fields[name] = _normalize_field_value(
                        request.fields[name]
                    )
                elif name == "host":
                    normalized_fields[name] = self._normalize_host_field(
                        uri=request.destination
                    )
        else:
            normalized_fields = {
                fld.name.lower(): _normalize_field_value(fld)
                for fld in request.fields
                if self._is_signable_header(fld.name.lower())
            }

        return dict(sorted(normalized_fields.items()))

    def _signed_query_headers(self) -> list[str]:
        return [
            name for name in QUERY_SIGNED_HEADERS if self._is_signable_header(name)
        ]

    def _is_signable_header(self, field_name: str) -> bool:
        return field_name not in self._excluded_headers

    def _normalize_host_field(self, *, uri: URI) -> str:
        if uri.port is not None and DEFAULT_PORTS.get(uri.scheme) == uri.port:
            uri_dict = uri.to_dict()
            uri_dict.update({"port": None})
            uri = URI(**uri_dict)
        return uri.netloc

    def _format_canonical_fields(self, *, fields: dict[str, str]) -> str:
        return "".join(f"{key}:{value}\n" for key, value in fields.items())

    def _compute_payload_hash(
        self, *, request: AWSRequest, signing_properties: SigV4ASigningProperties
    ) -> str:
        payload_signing = signing_properties.get(
            "payload_signing", PayloadSigningMode.EMPTY_SHA256
        )
        if payload_signing is PayloadSigningMode.UNSIGNED:
            return UNSIGNED_PAYLOAD
        if payload_signing is PayloadSigningMode.EMPTY_SHA256:
            return EMPTY_SHA256_HASH

        body = request.body

        if body is None:
            return EMPTY_SHA256_HASH

        if isinstance(body, str):
            body = body.encode()

        if isinstance(body, bytes | bytearray):
            return sha256(body).hexdigest()

        if request.is_async_body or not isinstance(body, Iterable):
            raise TypeError(
                "An async body was attached to a synchronous signer. Please "
                "ensure your body is of type bytes or Iterable[bytes], or sign "
                "it with sign_unsigned_payload."
            )

        warnings.warn(
            "Payload signing is enabled. This may result in "
            "decreased performance for large request bodies.",
            AWSSDKWarning,
        )

        checksum = sha256()
        if isinstance(body, Seekable):
            position = body.tell()
            for chunk in body:
                checksum.update(chunk)
            body.seek(position)
        else:
            buffer = io.BytesIO()
            for chunk in body:
                buffer.write(chunk)
                checksum.update(chunk)
            buffer.seek(0)
            request.body = buffer
        return checksum.hexdigest()


def _split_path(uri: URI) -> tuple[str, str | None]:
    """Separate any query component embedded in the path from the path itself."""
    path = uri.path or ""
    path, sep, embedded_query = path.partition("?")
    if not sep:
        return path, uri.query
    if uri.query:
        return path, f"{embedded_query}&{uri.query}"
    return path, embedded_query


def _parse_query(query: str | None) -> list[tuple[str, str]]:
    """Split a raw query into decoded pairs, keeping blanks and literal ``+``."""
    params = []
    for part in (query or "").split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        params.append((unquote(key), unquote(value)))
    return params


def _normalize_field_value(field: Field) -> str:
    # Each occurrence is trimmed and collapsed before the values are joined.
    return ",".join(" ".join(value.split()) for value in field.values)


def _remove_dot_segments(path: str, remove_consecutive_slashes: bool = True) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`.
    Optionally removes consecutive slashes, true by default.
    :param path: The path to modify.
    :param remove_consecutive_slashes: Whether to remove consecutive slashes.
    :returns: The path with dot segments removed.
    """
    output = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        elif segment != "..":
            output.append(segment)
        elif output:
            output.pop()
    if path.startswith("/") and (not output or output[0]):
        output.insert(0, "")
    if output and path.endswith(("/.", "/..")):
        output.append("")
    result = "/".join(output)
    if remove_consecutive_slashes:
        result = result.replace("//", "/")
    return result
