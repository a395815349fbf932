"""Bootstrap the first super admin: python create_user.py [email] [password]"""
import sys

from payaso import create_app
from payaso.errors import ConflictError
from payaso.extensions import db
from payaso.services import get_service

app = create_app()

with app.app_context():
    # first user's data
    email = sys.argv[1] if len(sys.argv) > 1 else "admin@payaso.org"
    password = sys.argv[2] if len(sys.argv) > 2 else "payaso123"  # change it after the first login
    role = "admin"

    db.create_all()
    try:
        user = get_service().create_user({
            "email": email,
            "password": password,
            "full_name": "Super Admin",
            "role": role,
        })
    except ConflictError:
        # already there, nothing to do
        print(f"User with email '{email}' already exists.")
    else:
        print(f"{role.capitalize()} created successfully!")
        print(f"Email: {user.email}")
        print(f"Password: {password}")
