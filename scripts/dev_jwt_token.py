# scripts/dev_jwt_token.py
"""Print a development bearer token: python scripts/dev_jwt_token.py <user_id> [admin]"""
import sys
from datetime import timedelta
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from app.shared.utils.security import create_access_token


def main():
    user_id = sys.argv[1] if len(sys.argv) > 1 else "demo_user_1"
    role = "admin" if len(sys.argv) > 2 and sys.argv[2] == "admin" else "user"
    print(create_access_token({"sub": user_id, "role": role}, timedelta(days=30)))


if __name__ == "__main__":
    main()
