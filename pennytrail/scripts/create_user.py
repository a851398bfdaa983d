"""
Register a mailbox owner and print the API token for the HTTP API.

Gmail OAuth tokens are obtained elsewhere and passed in as arguments.
The API token is shown once; only its hash is stored.
"""

import argparse

from pennytrail.core.database import Base, SessionLocal, engine
from pennytrail.core.logger import get_logger
from pennytrail.core.security import generate_api_token
from pennytrail.services.user_service import create_user

logger = get_logger("create_user")


def register_user(db, email: str, name: str, access_token: str = None, refresh_token: str = None):
    api_token = generate_api_token()
    user = create_user(
        db,
        email=email,
        name=name,
        api_token=api_token,
        access_token=access_token,
        refresh_token=refresh_token,
    )
    logger.info(f"[user {user.id}] Registered {email}")
    return user, api_token


def main(argv=None):
    parser = argparse.ArgumentParser(description="Register a Gmail mailbox owner")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--access-token")
    parser.add_argument("--refresh-token")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user, api_token = register_user(db, args.email, args.name, args.access_token, args.refresh_token)
        print(f"User id: {user.id}")
        print(f"API token: {api_token}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
