"""vmx-caps: VMX capability report from InstLatx64 CPUID dumps.

This package reads the text CPUID/MSR dumps published by the InstLatx64
project and reports which VT-x features the dumped processor supports.

Pipeline:
    DUMP TEXT -> DUMP PARSER -> CPU INFORMATION -> FEATURE REGISTRY -> REPORT
                     |               |                    |
               [line regexes] [CPUID + MSR maps]  [fixed bit table]

Modules:
    cpu_information: CpuidQuery, CpuidResult and CpuInformation value types
    dump_parser: Best-effort line classifier producing CpuInformation
    features: Frozen feature table and the generic bit-test extractor
    report: VmxReport orchestrator and report rendering
    cli: Command line entry point
"""

__version__ = "0.1.0"

from .cpu_information import CpuInformation, CpuidQuery, CpuidRegister, CpuidResult
from .dump_parser import DumpParser, parse_dump
from .features import FeatureRegistry, FeatureResult, FeatureSpec, Verdict, extract_features
from .report import VmxReport, render_report

__all__ = [
    "CpuInformation",
    "CpuidQuery",
    "CpuidRegister",
    "CpuidResult",
    "DumpParser",
    "parse_dump",
    "FeatureRegistry",
    "FeatureResult",
    "FeatureSpec",
    "Verdict",
    "extract_features",
    "VmxReport",
    "render_report",
]
