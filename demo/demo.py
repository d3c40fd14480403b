"""
authgate demo: trigger a refresh, then check one user's credentials.

Usage:
    python demo.py --user user5 --password cccccc [--address 192.168.1.2]
    python demo.py --refresh REFRESH_WHITE_LIST

Exit codes:
    0  success
    1  refresh failed, request denied (403) or other error
"""

import argparse
import asyncio
import sys

import aiohttp


AUTHGATE_BASE_URL = "http://localhost:8082"


async def run(args: argparse.Namespace) -> int:
    async with aiohttp.ClientSession(base_url=AUTHGATE_BASE_URL) as session:
        if args.refresh:
            async with session.post(f"/refresh/{args.refresh}") as resp:
                body = await resp.json()
            if body["status"] != 0:
                print(f"Refresh failed: {body['message']}", file=sys.stderr)
                return 1
            print(f"Refreshed {args.refresh}")

        if args.user:
            headers = {"X-Forwarded-For": args.address}
            auth = aiohttp.BasicAuth(args.user, args.password or "", encoding="utf-8")
            async with session.get("/auth", headers=headers, auth=auth) as resp:
                text = await resp.text()
                if resp.status != 200:
                    # HTTP 403 from authgate: whitelist or password check failed
                    print(f"Denied ({resp.status}): {text}", file=sys.stderr)
                    return 1
                print(f"Allowed, groups: {resp.headers.get('X-Auth-Groups') or '-'}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="authgate demo")
    parser.add_argument("--refresh", help="refresh identifier to dispatch first")
    parser.add_argument("--user", help="user to check")
    parser.add_argument("--password", help="password for --user")
    parser.add_argument("--address", default="127.0.0.1", help="client address to check")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except aiohttp.ClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
