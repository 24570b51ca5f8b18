#!/usr/bin/env python3
"""
Banner Seed Script

Creates the tables if needed and adds the default promo banners.
Usage: python scripts/seed_banners.py
"""
import sys
sys.path.insert(0, '.')

from opportunity_hub.db.schema import init_schema
from opportunity_hub.services.banner_service import DEFAULT_BANNERS, seed_banners


def main():
    print("Seeding banners...")
    init_schema()
    added = seed_banners()
    print(f"    ✅ {added} new, {len(DEFAULT_BANNERS) - added} already present")


if __name__ == "__main__":
    main()
