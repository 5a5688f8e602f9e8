"""
Serial number generators for provisioned equipment.

Responsibility:
    Each provisioned Equipment row needs a unique ``serial_number``.  The
    provisioner receives a ``SerialGenerator`` by injection, so tests pin
    the output and deployments can swap the scheme.

Architecture position:
    Kernel > Domain -- pure apart from the injected Clock.

Invariants enforced:
    - Serials from one generator instance never repeat (monotonic sequence
      per instance).  Separate instances differ by their node token.  The
      UNIQUE constraint on ``equipment.serial_number`` is the final guard;
      the orchestrator reports a violation as SerialNumberConflictError.
"""

from __future__ import annotations

import itertools
import re
import threading
from abc import ABC, abstractmethod
from typing import Protocol
from uuid import uuid4

from fieldservice_kernel.domain.clock import Clock, SystemClock

_WHITESPACE = re.compile(r"\s+")


class SerialSource(Protocol):
    """Catalog attributes a serial is derived from (InventoryItem fits)."""

    brand: str
    model: str
    capacity_btu: int | None


class SerialGenerator(ABC):
    """Produces a fresh serial number for one unit of ``source``."""

    @abstractmethod
    def next_serial(self, source: SerialSource) -> str:
        ...


def _token(value: object) -> str:
    return _WHITESPACE.sub("_", str(value).strip())


class CatalogSerialGenerator(SerialGenerator):
    """
    ``brand-model-<capacity>BTU-<epoch millis>-<node>-<sequence>``.

    The timestamp comes from the injected clock.  ``node`` identifies the
    generator instance: a random 8-hex token unless one is given, so
    orchestrators built per request, or in separate worker processes, do not
    reissue each other's serials.  The sequence counts units issued by this
    instance, so two units provisioned in the same millisecond still differ.
    """

    def __init__(self, clock: Clock | None = None, node: str | None = None):
        if node is not None and not _token(node):
            raise ValueError("node must not be blank")
        self._clock = clock or SystemClock()
        self._node = _token(node) if node is not None else uuid4().hex[:8]
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def node(self) -> str:
        return self._node

    def next_serial(self, source: SerialSource) -> str:
        with self._lock:
            seq = next(self._sequence)
        millis = int(self._clock.now().timestamp() * 1000)
        capacity = source.capacity_btu if source.capacity_btu is not None else 0
        return (
            f"{_token(source.brand)}-{_token(source.model)}-{capacity}BTU"
            f"-{millis}-{self._node}-{seq}"
        )


class UUIDSerialGenerator(SerialGenerator):
    """Opaque serials: brand prefix plus a random UUID hex."""

    def next_serial(self, source: SerialSource) -> str:
        return f"{_token(source.brand).upper()}-{uuid4().hex}"
