#!/usr/bin/env python3
# sign_init_data.py — print a signed Telegram initData string for local API testing
#
#   python scripts/sign_init_data.py --token "$BOT_TOKEN" --id 42 --first-name Ann
#   curl "http://localhost:3000/api/is-admin?initData=$(...)"
import argparse, os, time
from urllib.parse import quote

from hmac_utils import sign_init_data


def main(argv=None):
    p = argparse.ArgumentParser(description="Print a signed Telegram initData string.")
    p.add_argument("--token", default=os.getenv("BOT_TOKEN", ""), help="bot token (default: $BOT_TOKEN)")
    p.add_argument("--id", type=int, required=True, help="Telegram user id")
    p.add_argument("--first-name", default="")
    p.add_argument("--last-name", default="")
    p.add_argument("--username", default="")
    p.add_argument("--mode", choices=("webapp", "sha256"), default=os.getenv("INITDATA_KEY_MODE", "webapp"))
    p.add_argument("--quote", action="store_true", help="URL-encode the result for use as a query value")
    a = p.parse_args(argv)
    if not a.token:
        p.error("--token or $BOT_TOKEN required")

    user = {"id": a.id}
    for k in ("first_name", "last_name", "username"):
        v = getattr(a, k)
        if v:
            user[k] = v
    out = sign_init_data({"auth_date": int(time.time()), "user": user}, a.token, a.mode)
    print(quote(out, safe="") if a.quote else out)


if __name__ == "__main__":
    main()
