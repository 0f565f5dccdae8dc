"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Minimal HTTP request model consumed and updated by the signers.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypedDict
from urllib.parse import urlunsplit


class Field:
    """A name/values pair representing a single field (header) in a request.

    Repeated occurrences of a field are stored as multiple values on one
    ``Field`` and joined with a comma when rendered.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        """Append a value to the field."""
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        """Overwrite existing field values."""
        self.values = values

    def remove(self, value: str) -> None:
        """Remove all matching entries from the list of values."""
        self.values = [val for val in self.values if val != value]

    def as_string(self, delimiter: str = ",") -> str:
        """Get the values of the field joined as a single string."""
        return delimiter.join(self.values)

    def as_tuples(self) -> list[tuple[str, str]]:
        """Get the field as a list of (name, value) pairs."""
        return [(self.name, value) for value in self.values]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, values={self.values!r})"


class Fields:
    """Case-insensitive collection of :class:`Field` objects."""

    def __init__(self, initial: Iterable[Field] | None = None):
        self.entries: dict[str, Field] = {}
        for fld in initial or ():
            self.extend(fld)

    def set_field(self, field: Field) -> None:
        """Set a field, replacing any existing field with the same name."""
        self.entries[self._normalize_field_name(field.name)] = field

    def get_field(self, name: str) -> Field:
        """Retrieve the field with the given name."""
        return self.entries[self._normalize_field_name(name)]

    def remove_field(self, name: str) -> None:
        """Delete the field with the given name if present."""
        self.entries.pop(self._normalize_field_name(name), None)

    def extend(self, field: Field) -> None:
        """Add values to a field, creating it if it does not exist yet."""
        normalized_name = self._normalize_field_name(field.name)
        if normalized_name in self.entries:
            for value in field.values:
                self.entries[normalized_name].add(value)
        else:
            self.entries[normalized_name] = Field(name=field.name, values=field.values)

    def add(self, name: str, value: str) -> None:
        """Append a single value under ``name``."""
        self.extend(Field(name=name, values=[value]))

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self._normalize_field_name(key) in self.entries

    def __getitem__(self, name: str) -> Field:
        return self.get_field(name)

    def __iter__(self) -> Iterator[Field]:
        return iter(list(self.entries.values()))

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __repr__(self) -> str:
        return f"Fields({list(self.entries.values())!r})"


class URIParameters(TypedDict):
    scheme: str
    username: str | None
    password: str | None
    host: str
    port: int | None
    path: str | None
    query: str | None
    fragment: str | None


@dataclass(kw_only=True)
class URI:
    """Universal Resource Identifier, target location for a request."""

    host: str = ""
    path: str | None = None
    scheme: str = "https"
    query: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    fragment: str | None = None

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{username}:{password}@{host}:{port}``.

        ``username``, ``password``, and ``port`` are only included if set.
        """
        if self.username is not None:
            password = "" if self.password is None else f":{self.password}"
            userinfo = f"{self.username}{password}@"
        else:
            userinfo = ""

        if self.port is not None:
            port = f":{self.port}"
        else:
            port = ""

        host = self.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"

        return f"{userinfo}{host}{port}"

    def build(self) -> str:
        """Construct URI string representation."""
        return urlunsplit(
            (
                self.scheme,
                self.netloc,
                self.path or "",
                self.query or "",
                self.fragment or "",
            )
        )

    def to_dict(self) -> URIParameters:
        return {
            "scheme": self.scheme,
            "username": self.username,
            "password": self.password,
            "host": self.host,
            "port": self.port,
            "path": self.path,
            "query": self.query,
            "fragment": self.fragment,
        }


@dataclass(kw_only=True)
class AWSRequest:
    """An HTTP request to be signed.

    ``method`` and ``destination.path`` may be missing on a request under
    construction; the signers refuse to sign such a request.
    """

    destination: URI
    method: str | None = None
    fields: Fields = field(default_factory=Fields)
    body: Any = None

    @property
    def path(self) -> str | None:
        """Path including the query component, as sent on the request line."""
        path = self.destination.path
        if path is None:
            return None
        if self.destination.query:
            return f"{path}?{self.destination.query}"
        return path

    @property
    def is_async_body(self) -> bool:
        return isinstance(self.body, AsyncIterable)
