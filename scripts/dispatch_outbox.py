#!/usr/bin/env python3
"""
手动发送 outbox 中积压的邮件（不启动 API 时使用，例如 cron）。

用法：
    python scripts/dispatch_outbox.py
    python scripts/dispatch_outbox.py --limit 200
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings
from confreview.db import init_db
from confreview.notifications import dispatch_pending


def main():
    parser = argparse.ArgumentParser(description="Send pending notification outbox rows once")
    parser.add_argument("--limit", type=int, default=settings.notifications.batch_size, help="Max rows to try")
    args = parser.parse_args()

    if not settings.mail.configured:
        print("Warning: EMAIL_USER / EMAIL_PASS not set; every attempt will fail.")

    init_db()
    counts = dispatch_pending(args.limit)
    print(f"sent={counts['sent']} pending={counts['pending']} failed={counts['failed']}")


if __name__ == "__main__":
    main()
