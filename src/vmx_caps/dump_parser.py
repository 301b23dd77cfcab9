"""DumpParser: Best-effort line classifier for InstLatx64 CPUID dumps.

This module turns the free-form text of a CPUID dump into a CpuInformation
value. Every line is classified on its own with regular expressions, so
banners, blank lines and unknown sections never stop the parse.

Line Kinds:
    GROUP_HEADER: "------[ Logical CPU #0 ]------"
    CPUID: "CPUID 00000004: 1C03C163-03C0003F-00003FFF-00000006 [SL 03]"
    MSR: "MSR 0000048B: 0000-007F-0000-0000"
    LEAF_HEADER: "CPUID 0x00000007, 0x00000000"
    REGISTERS: "EAX=0x00000000 EBX=0x00002282 ECX=0x00000000 EDX=0x2C000000"
    UNRECOGNIZED: anything else

Only logical CPU 0 is interpreted; groups for other logical CPUs are
skipped. Within the interpreted lines a repeated leaf or MSR overwrites
the earlier value.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cpu_information import CpuInformation, CpuidQuery, CpuidRegister, CpuidResult


logger = logging.getLogger(__name__)

# Only this logical CPU's section of a multi-CPU dump is read
PRIMARY_LOGICAL_CPU = 0

GROUP_HEADER_RE = re.compile(r'^-+\[\s*(.+?)\s*\]-+$')
LOGICAL_CPU_RE = re.compile(r'^Logical CPU #(\d+)$', re.IGNORECASE)
CPUID_RE = re.compile(
    r'^CPUID\s+([0-9A-F]{1,8}):\s*'
    r'([0-9A-F]{8})-([0-9A-F]{8})-([0-9A-F]{8})-([0-9A-F]{8})'
    r'(?:\s*\[SL\s+([0-9A-F]{1,8})\])?.*$',
    re.IGNORECASE
)
MSR_RE = re.compile(
    r'^MSR\s+([0-9A-F]{1,8}):\s*([0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4})(?:\s.*)?$',
    re.IGNORECASE
)
_NUMBER = r'(0X[0-9A-F]+|[0-9A-F]+H|[0-9A-F]{8}|\d+)'
LEAF_HEADER_RE = re.compile(
    r'^CPUID\s+' + _NUMBER + r'(?:\s*[,/]\s*' + _NUMBER + r')?\s*:?\s*(.*)$',
    re.IGNORECASE
)
REGISTER_FIELD_RE = re.compile(r'\b(E[ABCD]X)\s*[=:]\s*([^\s,;]+)', re.IGNORECASE)
HEX32_RE = re.compile(r'^(?:0X)?([0-9A-F]{1,8})$', re.IGNORECASE)


@dataclass
class DumpLine:
    """Result of classifying one dump line.

    Attributes:
        kind: Line kind (e.g., "CPUID", "UNRECOGNIZED")
        params: Values extracted from the line
        valid: Whether the line was recognized and usable
        error: Reason the line was discarded
        raw_line: Original line text
    """
    kind: str
    params: Dict
    valid: bool
    error: Optional[str] = None
    raw_line: str = ""


def parse_number(token: str) -> int:
    """Parse a leaf or sub-leaf number from a header line.

    "0x" prefixed and "h" suffixed tokens are hex, as are 8-digit
    zero-padded tokens (the InstLatx64 convention). Anything else is decimal.

    Raises:
        ValueError: If the token cannot be parsed
    """
    token = token.strip().upper()

    if token.startswith("0X"):
        return int(token, 16)

    if token.endswith("H"):
        return int(token[:-1], 16)

    if len(token) == 8:
        return int(token, 16)

    return int(token, 10)


def parse_dashed_hex(value: str) -> int:
    """Parse a hex string, ignoring any dashes."""
    return int(value.replace("-", ""), 16)


class DumpParser:
    """Line-oriented parser for CPUID dump text.

    Attributes:
        current_key: LeafKey set by the most recent leaf header line
        discarded: Header and register lines that were recognized but unusable
    """

    def __init__(self):
        self.current_key: Optional[CpuidQuery] = None
        self.discarded: List[DumpLine] = []
        self._skipping_group = False

    def classify(self, line: str) -> DumpLine:
        """Classify a single line without touching parser state.

        Args:
            line: One line of dump text

        Returns:
            DumpLine describing the line
        """
        text = line.strip()

        if not text:
            return DumpLine("UNRECOGNIZED", {}, False, error="Empty line", raw_line=line)

        group_match = GROUP_HEADER_RE.match(text)
        if group_match:
            return DumpLine("GROUP_HEADER", {"name": group_match.group(1)}, True, raw_line=line)

        cpuid_match = CPUID_RE.match(text)
        if cpuid_match:
            subleaf = cpuid_match.group(6)
            query = CpuidQuery(
                int(cpuid_match.group(1), 16),
                int(subleaf, 16) if subleaf else 0
            )
            result = CpuidResult(*(int(cpuid_match.group(i), 16) for i in range(2, 6)))
            return DumpLine("CPUID", {"query": query, "result": result}, True, raw_line=line)

        msr_match = MSR_RE.match(text)
        if msr_match:
            return DumpLine(
                "MSR",
                {
                    "index": int(msr_match.group(1), 16),
                    "value": parse_dashed_hex(msr_match.group(2))
                },
                True,
                raw_line=line
            )

        header_match = LEAF_HEADER_RE.match(text)
        if header_match:
            try:
                leaf = parse_number(header_match.group(1))
                subleaf = parse_number(header_match.group(2)) if header_match.group(2) else 0
                query = CpuidQuery(leaf, subleaf)
            except ValueError as e:
                return DumpLine("LEAF_HEADER", {}, False, error=str(e), raw_line=line)

            # Trailing text without register fields is a label
            fields = REGISTER_FIELD_RE.findall(header_match.group(3))
            if not fields:
                return DumpLine("LEAF_HEADER", {"query": query}, True, raw_line=line)

            # Header and registers on the same line
            registers = self._classify_registers(fields, line)
            if not registers.valid:
                return DumpLine("LEAF_HEADER", {}, False, error=registers.error, raw_line=line)
            return DumpLine(
                "LEAF_HEADER",
                {"query": query, "result": registers.params["result"]},
                True,
                raw_line=line
            )

        fields = REGISTER_FIELD_RE.findall(text)
        if fields:
            return self._classify_registers(fields, line)

        return DumpLine("UNRECOGNIZED", {}, False, error="No known line shape", raw_line=line)

    def _classify_registers(self, fields: List, line: str) -> DumpLine:
        """Build a REGISTERS line from (label, value) pairs, keyed by label."""
        values: Dict[CpuidRegister, int] = {}
        for label, token in fields:
            hex_match = HEX32_RE.match(token)
            if not hex_match:
                return DumpLine(
                    "REGISTERS",
                    {},
                    False,
                    error=f"Invalid {label.upper()} value: {token}",
                    raw_line=line
                )
            values[CpuidRegister.from_name(label)] = int(hex_match.group(1), 16)

        missing = [reg.name for reg in CpuidRegister if reg not in values]
        if missing:
            return DumpLine(
                "REGISTERS",
                {},
                False,
                error=f"Missing registers: {', '.join(missing)}",
                raw_line=line
            )

        result = CpuidResult(**{reg.value: values[reg] for reg in CpuidRegister})
        return DumpLine("REGISTERS", {"result": result}, True, raw_line=line)

    def parse(self, text: str) -> CpuInformation:
        """Parse a complete dump.

        Args:
            text: Dump text

        Returns:
            CpuInformation with every CPUID leaf and MSR that was recognized
        """
        self.current_key = None
        self.discarded = []
        self._skipping_group = False
        info = CpuInformation()

        for line in text.splitlines():
            self.feed(line, info)

        logger.debug("Parsed %d CPUID leaves and %d MSRs (%d lines discarded)",
                     len(info.cpuid_results), len(info.msrs), len(self.discarded))
        return info

    def feed(self, line: str, info: CpuInformation) -> DumpLine:
        """Classify one line and apply it to info.

        Args:
            line: One line of dump text
            info: CpuInformation being filled

        Returns:
            The classified DumpLine
        """
        parsed = self.classify(line)

        if parsed.kind == "GROUP_HEADER":
            self._enter_group(parsed.params["name"])
            return parsed

        if self._skipping_group or parsed.kind == "UNRECOGNIZED":
            return parsed

        if not parsed.valid:
            logger.debug("Discarding %s line %r: %s", parsed.kind, line, parsed.error)
            self.discarded.append(parsed)
            if parsed.kind == "LEAF_HEADER":
                # Registers that follow belong to the rejected leaf, not the previous one
                self.current_key = None
            return parsed

        if parsed.kind == "CPUID":
            self._store_cpuid(info, parsed.params["query"], parsed.params["result"])
        elif parsed.kind == "MSR":
            index = parsed.params["index"]
            if index in info.msrs:
                logger.debug("MSR %08X repeated, keeping later value", index)
            info.msrs[index] = parsed.params["value"]
        elif parsed.kind == "LEAF_HEADER":
            self.current_key = parsed.params["query"]
            if "result" in parsed.params:
                self._store_cpuid(info, self.current_key, parsed.params["result"])
        elif parsed.kind == "REGISTERS":
            if self.current_key is None:
                parsed = DumpLine(
                    "REGISTERS",
                    parsed.params,
                    False,
                    error="Register line before any leaf header",
                    raw_line=line
                )
                logger.debug("Discarding %r: %s", line, parsed.error)
                self.discarded.append(parsed)
                return parsed
            self._store_cpuid(info, self.current_key, parsed.params["result"])

        return parsed

    def _enter_group(self, name: str) -> None:
        """Start a new dump group, skipping secondary logical CPUs."""
        self.current_key = None
        cpu_match = LOGICAL_CPU_RE.match(name)
        self._skipping_group = bool(cpu_match) and int(cpu_match.group(1)) != PRIMARY_LOGICAL_CPU
        if self._skipping_group:
            logger.debug("Skipping group %r", name)

    def _store_cpuid(self, info: CpuInformation, query: CpuidQuery, result: CpuidResult) -> None:
        if query in info.cpuid_results:
            logger.debug("CPUID %s repeated, keeping later value", query)
        info.cpuid_results[query] = result


def parse_dump(text: str) -> CpuInformation:
    """Parse CPUID dump text into a CpuInformation.

    Never raises on content; unusable lines are skipped.

    Args:
        text: Dump text

    Returns:
        CpuInformation built from the recognized lines
    """
    return DumpParser().parse(text)
