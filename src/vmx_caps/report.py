"""VmxReport: Orchestrator for dump-to-report processing.

This module implements the full pipeline:
    DUMP TEXT → PARSE → CPU INFORMATION → EXTRACT → RESULTS → REPORT

The report lists each registered feature on its own line, with the
feature names padded to a common column.
"""

import logging
from typing import Dict, List, Optional, Sequence

from .cpu_information import CpuInformation
from .dump_parser import DumpParser
from .features import FeatureResult, FeatureSpec, Verdict, extract_features, get_registry


logger = logging.getLogger(__name__)

VERDICT_MARKS: Dict[Verdict, str] = {
    Verdict.YES: "Y",
    Verdict.NO: "N",
    Verdict.UNKNOWN: "?",
}

# Shown for vendor/model when the dump lacks the identifying leaves
UNKNOWN_TEXT = "Unknown"


def render_report(results: Sequence[FeatureResult]) -> str:
    """Render results as "<name padded>: <mark>" lines.

    Args:
        results: Feature results in display order

    Returns:
        Report text without a trailing newline
    """
    if not results:
        return ""
    width = max(len(result.name) for result in results)
    return "\n".join(
        f"{result.name:{width}}: {VERDICT_MARKS[result.verdict]}"
        for result in results
    )


class VmxReport:
    """VMX capability report for one CPUID dump.

    Attributes:
        parser: DumpParser used to read the dump
        specs: Features to report, in display order
        info: Parsed CPUID/MSR values
        results: Feature results from the last run()
    """

    def __init__(self, specs: Optional[Sequence[FeatureSpec]] = None):
        """Initialize the report.

        Args:
            specs: Features to report (defaults to the registered VMX features)
        """
        self.parser = DumpParser()
        self.specs: List[FeatureSpec] = list(specs) if specs is not None else get_registry().get_specs()
        self.info: Optional[CpuInformation] = None
        self.results: List[FeatureResult] = []
        self._has_run = False

    def load_dump(self, text: str) -> None:
        """Parse dump text, replacing any previously loaded dump.

        Args:
            text: CPUID dump text
        """
        self.info = self.parser.parse(text)
        self.results = []
        self._has_run = False

    def run(self) -> List[FeatureResult]:
        """Evaluate every feature against the loaded dump.

        Returns:
            Feature results in display order

        Raises:
            RuntimeError: If no dump loaded
        """
        if self.info is None:
            raise RuntimeError("No dump loaded")

        self.results = extract_features(self.info, self.specs)
        self._has_run = True
        return self.results

    def get_results(self) -> List[FeatureResult]:
        """Get results, running the extraction if it hasn't run yet."""
        if not self._has_run:
            self.run()
        return list(self.results)

    def get_verdict(self, name: str) -> Verdict:
        """Get the verdict for one feature.

        Raises:
            KeyError: If name is not a reported feature
        """
        for result in self.get_results():
            if result.name == name:
                return result.verdict
        raise KeyError(f"Unknown feature: {name}")

    def vendor_name(self) -> str:
        if self.info is None:
            raise RuntimeError("No dump loaded")
        return self.info.vendor_name() or UNKNOWN_TEXT

    def model_name(self) -> str:
        if self.info is None:
            raise RuntimeError("No dump loaded")
        return self.info.model_name() or UNKNOWN_TEXT

    def render(self, header: bool = False) -> str:
        """Render the report.

        Args:
            header: Prefix the report with "<vendor> <model>" and a blank line

        Returns:
            Report text without a trailing newline
        """
        body = render_report(self.get_results())
        if header:
            return f"{self.vendor_name()} {self.model_name()}\n\n{body}"
        return body

    def print_report(self, header: bool = False) -> None:
        """Print the report to stdout."""
        print(self.render(header=header))

    def get_summary(self) -> Dict:
        """Get report summary.

        Returns:
            Dictionary with verdict counts and dump statistics
        """
        results = self.get_results()
        return {
            "vendor": self.vendor_name(),
            "model": self.model_name(),
            "cpuid_leaves": len(self.info.cpuid_results),
            "msrs": len(self.info.msrs),
            "discarded_lines": len(self.parser.discarded),
            "yes": sum(1 for r in results if r.verdict is Verdict.YES),
            "no": sum(1 for r in results if r.verdict is Verdict.NO),
            "unknown": [r.name for r in results if r.verdict is Verdict.UNKNOWN],
        }
