from __future__ import annotations

import os

from sqlalchemy import select

from backend.app.db.models.core_types import Role
from backend.app.db.models.models_v1 import User
from backend.app.db.session import SessionLocal
from backend.services.auth import create_user


def run_seed():
    db = SessionLocal()
    try:
        # Admin user (mot de passe via env, hash bcrypt)
        username = os.getenv("SEED_ADMIN_USERNAME", "admin")
        password = os.getenv("SEED_ADMIN_PASSWORD", "admin")

        user = db.scalar(select(User).where(User.username == username))
        if not user:
            create_user(db, username, password, role=Role.admin)

        print(f"SEED OK: user={username}")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
