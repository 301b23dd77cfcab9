"""FeatureRegistry: Fixed table of VMX capability features.

This module implements the registry pattern for feature lookups: each
feature is a frozen (name, condition, polarity) entry and the extractor is
one generic routine that evaluates every entry against a CpuInformation.

Conditions:
    CpuidBitSet: bit of a CPUID (leaf, subleaf) register
    MsrBitSet: bit of a 64-bit MSR value
    And / Or / Not: composition; an unknown operand makes the result unknown

Registered Features (display order):
    EPT: IA32_VMX_PROCBASED_CTLS2 allowed-1 bit 1
    Unrestricted Guest: IA32_VMX_PROCBASED_CTLS2 allowed-1 bit 7
    VMCS Shadowing: IA32_VMX_PROCBASED_CTLS2 allowed-1 bit 14
    APIC-register virtualization: IA32_VMX_PROCBASED_CTLS2 allowed-1 bit 8
    Virtual-interrupt delivery: IA32_VMX_PROCBASED_CTLS2 allowed-1 bit 9
    VMX Preemption Timer: IA32_VMX_PINBASED_CTLS allowed-1 bit 6
    Process posted interrupts: IA32_VMX_PINBASED_CTLS allowed-1 bit 7

The VMX capability MSRs report allowed-1 settings in their high dword, so
control bit n is MSR bit 32 + n.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .cpu_information import CpuInformation, CpuidQuery, CpuidRegister


logger = logging.getLogger(__name__)

IA32_VMX_PINBASED_CTLS = 0x481
IA32_VMX_PROCBASED_CTLS2 = 0x48B

# High dword of a VMX capability MSR holds the allowed-1 settings
ALLOWED_1 = 32


class Verdict(Enum):
    """Outcome of evaluating one feature."""
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"

    @classmethod
    def from_tristate(cls, value: Optional[bool]) -> "Verdict":
        if value is None:
            return cls.UNKNOWN
        return cls.YES if value else cls.NO


class Condition:
    """Base class for feature conditions.

    evaluate() returns True/False, or None when the dump lacks the data.
    """

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        raise NotImplementedError


@dataclass(frozen=True)
class CpuidBitSet(Condition):
    """Bit `bit` of `register` in the CPUID result for `query` is set."""
    query: CpuidQuery
    register: CpuidRegister
    bit: int

    def __post_init__(self):
        if not 0 <= self.bit < 32:
            raise ValueError(f"CPUID bit index out of range: {self.bit}")

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        result = info.cpuid(self.query)
        if result is None:
            return None
        return (result.get(self.register) >> self.bit) & 1 == 1


@dataclass(frozen=True)
class MsrBitSet(Condition):
    """Bit `bit` of MSR `index` is set."""
    index: int
    bit: int

    def __post_init__(self):
        if not 0 <= self.bit < 64:
            raise ValueError(f"MSR bit index out of range: {self.bit}")

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        value = info.rdmsr(self.index)
        if value is None:
            return None
        return (value >> self.bit) & 1 == 1


@dataclass(frozen=True)
class And(Condition):
    """True when both sides hold; Unknown if either side is Unknown."""
    left: Condition
    right: Condition

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        left = self.left.evaluate(info)
        right = self.right.evaluate(info)
        if left is None or right is None:
            return None
        return left and right


@dataclass(frozen=True)
class Or(Condition):
    """True when either side holds; Unknown if either side is Unknown."""
    left: Condition
    right: Condition

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        left = self.left.evaluate(info)
        right = self.right.evaluate(info)
        if left is None or right is None:
            return None
        return left or right


@dataclass(frozen=True)
class Not(Condition):
    """Negation of the operand; Unknown stays Unknown."""
    operand: Condition

    def evaluate(self, info: CpuInformation) -> Optional[bool]:
        value = self.operand.evaluate(info)
        return None if value is None else not value


@dataclass(frozen=True)
class FeatureSpec:
    """Static description of one reported feature.

    Attributes:
        name: Display name
        condition: Where the feature bit lives
        inverted: True if the feature is present when the bit is clear
    """
    name: str
    condition: Condition
    inverted: bool = False

    def is_present(self, info: CpuInformation) -> Optional[bool]:
        """Evaluate the feature, applying polarity.

        Returns:
            True/False, or None if the dump lacks the data
        """
        value = self.condition.evaluate(info)
        if value is None:
            return None
        return not value if self.inverted else value


@dataclass(frozen=True)
class FeatureResult:
    """A feature together with its verdict for one dump."""
    spec: FeatureSpec
    verdict: Verdict

    @property
    def name(self) -> str:
        return self.spec.name


class FeatureRegistry:
    """Registry of reported features, in display order.

    The registry is frozen after initialization to ensure
    no runtime modifications can occur.

    Attributes:
        _features: Dictionary mapping feature names to specs
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all VMX features."""
        self._features: Dict[str, FeatureSpec] = {}
        self._frozen = False
        self._register_all_features()
        self.freeze()

    def _register_all_features(self) -> None:
        """Register the VMX capability features."""
        # Secondary processor-based controls
        self.register(FeatureSpec("EPT", MsrBitSet(IA32_VMX_PROCBASED_CTLS2, ALLOWED_1 + 1)))
        self.register(FeatureSpec("Unrestricted Guest", MsrBitSet(IA32_VMX_PROCBASED_CTLS2, ALLOWED_1 + 7)))
        self.register(FeatureSpec("VMCS Shadowing", MsrBitSet(IA32_VMX_PROCBASED_CTLS2, ALLOWED_1 + 14)))
        self.register(FeatureSpec("APIC-register virtualization", MsrBitSet(IA32_VMX_PROCBASED_CTLS2, ALLOWED_1 + 8)))
        self.register(FeatureSpec("Virtual-interrupt delivery", MsrBitSet(IA32_VMX_PROCBASED_CTLS2, ALLOWED_1 + 9)))

        # Pin-based controls
        self.register(FeatureSpec("VMX Preemption Timer", MsrBitSet(IA32_VMX_PINBASED_CTLS, ALLOWED_1 + 6)))
        self.register(FeatureSpec("Process posted interrupts", MsrBitSet(IA32_VMX_PINBASED_CTLS, ALLOWED_1 + 7)))

    def register(self, spec: FeatureSpec) -> None:
        """Register a feature.

        Args:
            spec: Feature to append to the display order

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If name already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register features: registry is frozen")
        if spec.name in self._features:
            raise ValueError(f"Feature already registered: {spec.name}")
        self._features[spec.name] = spec

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if registry is frozen."""
        return self._frozen

    def get_specs(self) -> List[FeatureSpec]:
        """Get all feature specs in display order."""
        return list(self._features.values())

    def get(self, name: str) -> FeatureSpec:
        """Look up a feature by name.

        Raises:
            KeyError: If name not in registry
        """
        if name not in self._features:
            raise KeyError(f"Unknown feature: {name}")
        return self._features[name]


# Singleton registry instance
_registry: Optional[FeatureRegistry] = None


def get_registry() -> FeatureRegistry:
    """Get the singleton feature registry instance.

    Returns:
        The frozen FeatureRegistry instance
    """
    global _registry
    if _registry is None:
        _registry = FeatureRegistry()
    return _registry


def extract_features(info: CpuInformation,
                     specs: Optional[Sequence[FeatureSpec]] = None) -> List[FeatureResult]:
    """Evaluate features against parsed dump data.

    Args:
        info: Parsed CPUID/MSR values
        specs: Features to evaluate (defaults to the registered VMX features)

    Returns:
        One FeatureResult per spec, in the same order
    """
    if specs is None:
        specs = get_registry().get_specs()

    results = []
    for spec in specs:
        verdict = Verdict.from_tristate(spec.is_present(info))
        if verdict is Verdict.UNKNOWN:
            logger.info("%s: required data not present in dump", spec.name)
        results.append(FeatureResult(spec, verdict))
    return results
