import seed_db
from app.core.security import verify_password
from app.models import User


def test_seed_creates_verified_demo_accounts_once(session_factory, monkeypatch):
    monkeypatch.setattr(seed_db, "SessionLocal", session_factory)
    monkeypatch.setattr(seed_db, "engine", session_factory.kw["bind"])

    seed_db.seed_database()
    seed_db.seed_database()

    db = session_factory()
    users = db.query(User).order_by(User.id).all()
    db.close()

    assert [u.email for u in users] == [u["email"] for u in seed_db.DEMO_USERS]
    assert all(u.is_verified and not u.is_guest for u in users)
    assert verify_password(seed_db.DEMO_PASSWORD, users[0].hashed_password)
    assert users[1].company_name == "Acme Talent"
