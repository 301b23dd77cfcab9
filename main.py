#!/usr/bin/env python3
"""vmx-caps Command Line Interface.

Print the VMX capabilities recorded in an InstLatx64 CPUID dump.

Usage:
    python main.py < dumps/GenuineIntel00406C3_Braswell_CPUID.txt
    python main.py --header dumps/GenuineIntel00406C3_Braswell_CPUID.txt
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from vmx_caps.cli import main


if __name__ == "__main__":
    sys.exit(main())
