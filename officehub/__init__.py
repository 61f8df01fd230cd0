"""
OfficeHub — Self-Service Virtual Offices for Discord
=====================================================
Lets a Discord community run "virtual offices": named groups backed by a
dedicated voice channel, with an owner, a member list, a privacy flag and
admin oversight.  Every membership change is mirrored into the voice
channel's connect/speak permission overwrites.

Package layout::

    officehub/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Discord permission masks, placeholder identity
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models (users, offices, office_members)
    │   └── store.py       # PersistenceStore: in-memory + relational backends
    ├── services/
    │   ├── exceptions.py     # Domain error taxonomy
    │   ├── access_policy.py  # Who may manage / join what
    │   ├── voice_gateway.py  # Discord voice channel CRUD + overwrites
    │   ├── guild_service.py  # Guild member / role lookups
    │   ├── user_service.py   # Login upsert + admin flag refresh
    │   ├── views.py          # Enriched office views
    │   └── office_service.py # OfficeDirectory — the orchestrator
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Discord OAuth2 → JWT
        └── routes/        # Office + user endpoints
"""

__version__ = "0.1.0"
