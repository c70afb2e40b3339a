"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy as a module-level object so it can be imported
anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever needed.

    from settleup.app.extensions import db

Do not pass the app object directly to SQLAlchemy() at import time — that
would prevent running tests with a separate test app instance.

The balance engine itself never imports `db`. It reads through a
TransactionReader (services/transaction_reader.py) that receives a plain
SQLAlchemy Session, so unit tests run without an app context.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
