#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
TradingView -> Binance Futures webhook relay - Main Entry Point
Receives chart alerts, places market orders and reports to Telegram
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "tv_relay_bot"))

from web.server import run  # noqa: E402


def main():
    """Main entry point"""
    run()


if __name__ == "__main__":
    main()
