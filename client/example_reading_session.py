#!/usr/bin/env python3
"""
Example: Reading Session
Simulates a month of daily reading and pushes each day's reducer state
to a running viewer, so the tree grows from seed to young tree.

Usage:
    python main.py                      (in one terminal)
    python client/example_reading_session.py
"""

import sys
import os
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from client.garden_client import GardenClient

PAGES_PER_DAY = 5
MINUTES_PER_DAY = 25
DAYS = 30


def main():
    client = GardenClient()

    print("Reading Session Simulation")
    print("=" * 40)

    state = {"totalPages": 0, "totalMinutes": 0, "dayStreak": 0,
             "khatms": 0, "memo": {}}
    try:
        for day in range(1, DAYS + 1):
            state["totalPages"] += PAGES_PER_DAY
            state["totalMinutes"] += MINUTES_PER_DAY
            state["dayStreak"] = day

            # Memorize Al-Fatiha over the first week
            good = min(7, day)
            state["memo"] = {"1": {
                "status": "complete" if good == 7 else "active",
                "verseConfidence": {str(v): "good" for v in range(1, good + 1)},
            }}

            result = client.push_snapshot(state)
            print(f"  Day {day:2d}: {state['totalPages']:3d} pages, "
                  f"{state['totalMinutes']:4d} min -> {result['stage']} "
                  f"({result['progress'] * 100:.0f}%)")
            time.sleep(0.5)

        # Watch the finished garden through a full day
        print("\nCycling time of day...")
        for hour in range(0, 24, 2):
            client.set_hour(hour)
            time.sleep(0.4)
        client.set_hour(None)

        print(f"\nFinal status: {client.get_status()}")

    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        client.close()


if __name__ == "__main__":
    main()
