"""CpuInformation: Parsed CPUID and MSR state of one logical CPU.

This module defines the value types produced by the dump parser and
consumed by the feature extractor.

Components:
    - CpuidQuery: (leaf, subleaf) input of a CPUID invocation
    - CpuidResult: EAX/EBX/ECX/EDX output of a CPUID invocation
    - CpuidRegister: Names of the four result registers
    - CpuInformation: CPUID results plus MSR values, with vendor/model helpers

All entities are created fresh for a single run and never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


# Register width
UINT32_MAX = (2**32) - 1

STANDARD_LEAF_BASE = 0x0000_0000
EXTENDED_LEAF_BASE = 0x8000_0000


class CpuidRegister(Enum):
    """The registers of a CpuidResult."""
    EAX = "eax"
    EBX = "ebx"
    ECX = "ecx"
    EDX = "edx"

    @classmethod
    def from_name(cls, name: str) -> "CpuidRegister":
        """Look up a register by name.

        Args:
            name: Register name (EAX-EDX, case insensitive)

        Returns:
            Matching CpuidRegister

        Raises:
            KeyError: If register doesn't exist
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise KeyError(f"Invalid register: {name}") from None


@dataclass(frozen=True, order=True)
class CpuidQuery:
    """The input to a CPUID invocation.

    Attributes:
        leaf: Value of EAX when CPUID is executed
        subleaf: Value of ECX when CPUID is executed (0 for simple leaves)
    """
    leaf: int
    subleaf: int = 0

    def __post_init__(self):
        for name in ("leaf", "subleaf"):
            value = getattr(self, name)
            if not 0 <= value <= UINT32_MAX:
                raise ValueError(f"CPUID {name} out of range: {value:#x}")

    @classmethod
    def of(cls, leaf: int) -> "CpuidQuery":
        """Simple queries do not require a subleaf."""
        return cls(leaf, 0)

    def __str__(self) -> str:
        return f"{self.leaf:08X}.{self.subleaf:02X}"


@dataclass(frozen=True)
class CpuidResult:
    """The result of a CPUID invocation.

    Attributes:
        eax: EAX output value
        ebx: EBX output value
        ecx: ECX output value
        edx: EDX output value
    """
    eax: int
    ebx: int
    ecx: int
    edx: int

    def __post_init__(self):
        for reg in CpuidRegister:
            value = getattr(self, reg.value)
            if not 0 <= value <= UINT32_MAX:
                raise ValueError(f"{reg.name} out of range: {value:#x}")

    def get(self, reg: CpuidRegister) -> int:
        """Retrieve a register value from a CPUID result.

        Args:
            reg: Register to read

        Returns:
            Register value
        """
        return getattr(self, reg.value)

    def __str__(self) -> str:
        return f"{self.eax:08X}-{self.ebx:08X}-{self.ecx:08X}-{self.edx:08X}"


def dwords_to_bytes(dwords: List[int]) -> bytes:
    """Convert little-endian 32-bit values to bytes, stopping at the first NUL."""
    raw = b"".join(dw.to_bytes(4, "little") for dw in dwords)
    end = raw.find(b"\x00")
    return raw if end < 0 else raw[:end]


@dataclass
class CpuInformation:
    """CPUID and MSR values known for one logical CPU.

    Attributes:
        cpuid_results: Mapping of CpuidQuery to CpuidResult
        msrs: Mapping of MSR index to 64-bit value
    """
    cpuid_results: Dict[CpuidQuery, CpuidResult] = field(default_factory=dict)
    msrs: Dict[int, int] = field(default_factory=dict)

    def cpuid(self, query: CpuidQuery) -> Optional[CpuidResult]:
        """Return the result of a CPUID invocation, or None if unknown."""
        return self.cpuid_results.get(query)

    def rdmsr(self, index: int) -> Optional[int]:
        """Return the result of a RDMSR invocation, or None if unknown."""
        return self.msrs.get(index)

    def max_standard_leaf(self) -> int:
        """The maximum supported standard (0x0000_xxxx) CPUID leaf."""
        result = self.cpuid(CpuidQuery.of(STANDARD_LEAF_BASE))
        return result.eax if result else 0

    def max_extended_leaf(self) -> int:
        """The maximum supported extended (0x8000_xxxx) CPUID leaf."""
        result = self.cpuid(CpuidQuery.of(EXTENDED_LEAF_BASE))
        return result.eax if result else EXTENDED_LEAF_BASE

    def vendor_bytes(self) -> Optional[bytes]:
        """Vendor identification string as raw bytes (EBX, EDX, ECX of leaf 0)."""
        result = self.cpuid(CpuidQuery.of(STANDARD_LEAF_BASE))
        if result is None:
            return None
        return dwords_to_bytes([result.ebx, result.edx, result.ecx])

    def vendor_name(self) -> Optional[str]:
        """Vendor name, decoded lossily in case it is not valid UTF-8."""
        raw = self.vendor_bytes()
        return raw.decode("utf-8", errors="replace") if raw is not None else None

    def model_bytes(self) -> Optional[bytes]:
        """Processor brand string as raw bytes (leaves 0x8000_0002-0x8000_0004).

        Returns:
            Brand bytes, or None if the dump lacks any of the brand leaves
        """
        if self.max_extended_leaf() < EXTENDED_LEAF_BASE + 4:
            return None

        dwords: List[int] = []
        for leaf in range(EXTENDED_LEAF_BASE + 2, EXTENDED_LEAF_BASE + 5):
            result = self.cpuid(CpuidQuery.of(leaf))
            if result is None:
                return None
            dwords.extend([result.eax, result.ebx, result.ecx, result.edx])
        return dwords_to_bytes(dwords)

    def model_name(self) -> Optional[str]:
        """Model name, decoded lossily in case it is not valid UTF-8."""
        raw = self.model_bytes()
        return raw.decode("utf-8", errors="replace") if raw is not None else None

    def __str__(self) -> str:
        return f"CpuInformation({len(self.cpuid_results)} CPUID leaves, {len(self.msrs)} MSRs)"
