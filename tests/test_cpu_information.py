"""Tests for CpuInformation value types."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from vmx_caps.cpu_information import (
    CpuInformation,
    CpuidQuery,
    CpuidRegister,
    CpuidResult,
    UINT32_MAX,
    dwords_to_bytes,
)


class TestCpuidQuery:
    """Test LeafKey construction and ordering."""

    def test_subleaf_defaults_to_zero(self):
        """A query without a subleaf uses subleaf 0."""
        assert CpuidQuery(7) == CpuidQuery(7, 0)
        assert CpuidQuery.of(7) == CpuidQuery(7, 0)

    def test_queries_are_hashable_keys(self):
        """Queries with equal fields map to the same dict entry."""
        table = {CpuidQuery(4, 1): "a"}
        assert table[CpuidQuery(4, 1)] == "a"
        assert CpuidQuery(4, 2) not in table

    def test_ordering(self):
        """Queries sort by leaf, then subleaf."""
        keys = [CpuidQuery(7, 1), CpuidQuery(0x80000000), CpuidQuery(7, 0), CpuidQuery(1)]
        assert sorted(keys) == [CpuidQuery(1), CpuidQuery(7, 0), CpuidQuery(7, 1), CpuidQuery(0x80000000)]

    def test_out_of_range_leaf(self):
        """Leaf numbers must fit in 32 bits."""
        with pytest.raises(ValueError):
            CpuidQuery(UINT32_MAX + 1)
        with pytest.raises(ValueError):
            CpuidQuery(0, -1)

    def test_str(self):
        assert str(CpuidQuery(4, 3)) == "00000004.03"


class TestCpuidResult:
    """Test RegisterSet access."""

    def test_get_each_register(self):
        """get returns the named register."""
        result = CpuidResult(1, 2, 3, 4)
        assert result.get(CpuidRegister.EAX) == 1
        assert result.get(CpuidRegister.EBX) == 2
        assert result.get(CpuidRegister.ECX) == 3
        assert result.get(CpuidRegister.EDX) == 4

    def test_immutable(self):
        """Results cannot be modified after parsing."""
        result = CpuidResult(1, 2, 3, 4)
        with pytest.raises(AttributeError):
            result.eax = 5

    def test_out_of_range_value(self):
        """Register values must fit in 32 bits."""
        with pytest.raises(ValueError):
            CpuidResult(UINT32_MAX + 1, 0, 0, 0)

    def test_str(self):
        assert str(CpuidResult(0x16, 0x756E6547, 0x6C65746E, 0x49656E69)) == "00000016-756E6547-6C65746E-49656E69"


class TestCpuidRegister:
    """Test register name lookup."""

    def test_from_name_case_insensitive(self):
        assert CpuidRegister.from_name("eax") is CpuidRegister.EAX
        assert CpuidRegister.from_name("EDX") is CpuidRegister.EDX
        assert CpuidRegister.from_name(" Ecx ") is CpuidRegister.ECX

    def test_from_name_invalid(self):
        with pytest.raises(KeyError):
            CpuidRegister.from_name("ESI")


class TestVendorAndModel:
    """Test identification strings derived from CPUID leaves."""

    @pytest.fixture
    def info(self):
        return CpuInformation(cpuid_results={
            CpuidQuery(0): CpuidResult(0x0B, 0x756E6547, 0x6C65746E, 0x49656E69),
            CpuidQuery(0x80000000): CpuidResult(0x80000008, 0, 0, 0),
            CpuidQuery(0x80000002): CpuidResult(0x65746E49, 0x2952286C, 0x6C654320, 0x6E6F7265),
            CpuidQuery(0x80000003): CpuidResult(0x20295228, 0x20555043, 0x30334E20, 0x20203035),
            CpuidQuery(0x80000004): CpuidResult(0x2E312040, 0x48473036, 0x0000007A, 0x00000000),
        })

    def test_dwords_to_bytes_trims_at_nul(self):
        assert dwords_to_bytes([0x65746E49, 0x0000006C]) == b"Intel"

    def test_vendor_name(self, info):
        assert info.vendor_name() == "GenuineIntel"

    def test_model_name(self, info):
        assert info.model_name() == "Intel(R) Celeron(R) CPU  N3050  @ 1.60GHz"

    def test_max_leaves(self, info):
        assert info.max_standard_leaf() == 0x0B
        assert info.max_extended_leaf() == 0x80000008

    def test_missing_leaves(self):
        """Empty dumps have no vendor or model."""
        info = CpuInformation()
        assert info.vendor_name() is None
        assert info.model_name() is None
        assert info.max_standard_leaf() == 0
        assert info.max_extended_leaf() == 0x80000000

    def test_model_requires_all_brand_leaves(self, info):
        """A missing brand leaf means the model is unknown."""
        del info.cpuid_results[CpuidQuery(0x80000003)]
        assert info.model_name() is None


class TestLookups:
    """Test cpuid/rdmsr accessors."""

    def test_cpuid_and_rdmsr(self):
        info = CpuInformation(
            cpuid_results={CpuidQuery(1): CpuidResult(1, 2, 3, 4)},
            msrs={0x48B: 0x00000CFF00000000}
        )
        assert info.cpuid(CpuidQuery(1)) == CpuidResult(1, 2, 3, 4)
        assert info.cpuid(CpuidQuery(1, 1)) is None
        assert info.rdmsr(0x48B) == 0x00000CFF00000000
        assert info.rdmsr(0x481) is None
