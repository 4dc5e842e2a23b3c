# datavista_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import click
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from sqlalchemy import text


db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()

def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Create the tables (dev/MVP). In production use `flask db upgrade`."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tables created.")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("password")
    @click.option("--name", default="Admin")
    def create_admin_cmd(email, password, name):
        """Create (or promote) a blog administrator."""
        from .models import User
        with app.app_context():
            u = User.query.filter_by(email=email).first()
            if not u:
                u = User(name=name, email=email)
                db.session.add(u)
            u.is_admin = True
            u.set_password(password)
            db.session.commit()
            print(f"Admin ready: {email}")
