#!/usr/bin/env python3
"""
Sidr Garden - Entry Point
Run this to open the garden viewer.
"""

import sys
import os

# Add project root to path so canonical module imports work
# (e.g. "from growth.params import EngagementSnapshot")
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app import main

if __name__ == "__main__":
    main()
