"""
One-off helper that obtains the long-lived Google refresh token.

Run it once with GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and
GOOGLE_REDIRECT_URI set, open the printed URL, approve access and paste
the returned code. Put the printed value into GOOGLE_REFRESH_TOKEN.
"""
import os
import sys

from dotenv import load_dotenv
from google_auth_oauthlib.flow import Flow

from .config import DRIVE_SCOPES, GOOGLE_TOKEN_URI


def build_flow(client_id: str, client_secret: str, redirect_uri: str) -> Flow:
    client_config = {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }
    return Flow.from_client_config(client_config, scopes=DRIVE_SCOPES, redirect_uri=redirect_uri)


def main() -> None:
    load_dotenv()
    missing = [
        name
        for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI")
        if not os.getenv(name)
    ]
    if missing:
        print(f"Missing required environment variables: {', '.join(missing)}", file=sys.stderr)
        sys.exit(1)

    flow = build_flow(
        os.environ["GOOGLE_CLIENT_ID"],
        os.environ["GOOGLE_CLIENT_SECRET"],
        os.environ["GOOGLE_REDIRECT_URI"],
    )
    url, _ = flow.authorization_url(access_type="offline", prompt="consent")
    print("Authorize this app by visiting this url:", url)
    code = input("Enter the code from that page here: ").strip()
    try:
        flow.fetch_token(code=code)
    except Exception as e:
        print(f"Error getting token: {e}", file=sys.stderr)
        sys.exit(1)
    print("Refresh token:", flow.credentials.refresh_token)


if __name__ == "__main__":
    main()
