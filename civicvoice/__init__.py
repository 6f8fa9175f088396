"""
CivicVoice — Citizen Suggestion Portal
=======================================
Citizens register, submit suggestions for laws and regulations, and vote on
them.  Administrators approve accounts, triage suggestions, and forward the
popular ones to lawmakers.

Package layout::

    civicvoice/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Collection names, categories, cookie name
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # kv_entries table
    │   └── store.py       # Key-value store over kv_entries
    ├── engine/
    │   ├── records.py     # User / Suggestion / Vote / Session records
    │   ├── voting.py      # Vote casting + counter maintenance
    │   └── sessions.py    # Opaque session tokens with lazy expiry
    ├── services/
    │   ├── repository.py    # Typed CRUD + queries over the store
    │   ├── auth_service.py  # Password hashing, sign-up, sign-in
    │   ├── google_oauth.py  # Federated login callback
    │   └── email_service.py # Notification messages
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency injection + session cookie
        ├── auth.py        # Sign-up / sign-in / Google login
        └── routes/        # Suggestions + admin endpoints
"""

__version__ = "0.1.0"
