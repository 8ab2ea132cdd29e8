import argparse
import os
import sys
import time

import jwt

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from repo_webscripts.config import settings

def main():
    parser = argparse.ArgumentParser(description="Issue a development bearer token.")
    parser.add_argument("username")
    parser.add_argument("--authority", action="append", default=[], help="May be repeated.")
    parser.add_argument("--ttl", type=int, default=3600, help="Lifetime in seconds.")
    args = parser.parse_args()

    secret = settings.jwt_secret.get_secret_value()
    if not secret:
        sys.exit("JWT_SECRET is not configured.")

    now = int(time.time())
    payload = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + args.ttl,
        "sub": args.username,
        "authorities": args.authority,
    }

    print(jwt.encode(payload, secret, algorithm=settings.jwt_algo))

if __name__ == "__main__":
    main()
