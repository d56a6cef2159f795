"""Shared fixtures."""
import pytest
from flask_jwt_extended import create_access_token
from mrc_attendance import create_app, db
from mrc_attendance.models.user import User, UserRole

@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture
def runner(app):
    return app.test_cli_runner()

@pytest.fixture
def make_user(app):
    """Factory for saved users."""
    def _make_user(email, role=UserRole.CAANG, password='password123', name=None, is_active=True):
        user = User(
            email=email,
            name=name or email.split('@')[0].title(),
            role=role,
            is_active=is_active
        )
        user.set_password(password)
        return user.save()
    return _make_user

@pytest.fixture
def caang(make_user):
    return make_user('caang@mrc.test', name='Calon Anggota')

@pytest.fixture
def recruiter(make_user):
    return make_user('recruiter@mrc.test', role=UserRole.RECRUITER)

@pytest.fixture
def admin(make_user):
    return make_user('admin@mrc.test', role=UserRole.ADMIN)

@pytest.fixture
def auth_headers():
    """Bearer headers for a user."""
    def _auth_headers(user):
        return {'Authorization': f'Bearer {create_access_token(identity=user.uid)}'}
    return _auth_headers
