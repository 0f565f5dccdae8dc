"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Seekable(Protocol):
    """A stream that can report and restore its position."""

    def seek(self, offset: int, whence: int = 0, /) -> int: ...

    def tell(self) -> int: ...
