#!/usr/bin/env python3
"""
Main Entry Point

Evidence Integrity Pipeline - citation verification and review triage
"""

import sys

from evidence_integrity.main import main

if __name__ == "__main__":
    sys.exit(main())
