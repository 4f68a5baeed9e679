from datetime import date, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db, User, Movie, Review

PASSWORD = "secret123"

MOVIE_FORM = {
    "title": "X",
    "director": "Y",
    "released_on": "2000-01-01",
    "duration": "100",
    "rating": "G",
    "total_gross": "300000000",
    "image_file_name": "x.jpg",
}


@pytest.fixture
def images_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    for name in ("x.jpg", "iron-man.png", "captain_marvel.JPG"):
        (path / name).write_bytes(b"\x89PNG")
    return path


@pytest.fixture
def app(images_dir):
    app = create_app(TestConfig, {"IMAGES_DIR": str(images_dir)})
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    # only for tests that don't go through the client; a pushed context
    # would be shared by every client request
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def add_user(app, name="Daisy", username="daisy", email="daisy@example.com",
             password=PASSWORD, admin=False):
    with app.app_context():
        user = User(name=name, username=username, email=email, password=password, admin=admin)
        db.session.add(user)
        db.session.commit()
        return user.id


def add_movie(app, **overrides):
    attrs = {
        "title": "Iron Man",
        "director": "Jon Favreau",
        "released_on": date(2008, 5, 2),
        "duration": 126,
        "rating": "PG-13",
        "total_gross": Decimal("585366247"),
        "image_file_name": "iron-man.png",
    }
    attrs.update(overrides)
    with app.app_context():
        movie = Movie(**attrs)
        db.session.add(movie)
        db.session.commit()
        return movie.id


def add_review(app, movie_id, stars=5, name="Larry", comment="Loved it!"):
    with app.app_context():
        review = Review(movie_id=movie_id, name=name, comment=comment, stars=stars)
        db.session.add(review)
        db.session.commit()
        return review.id


def sign_in(client, identifier="daisy", password=PASSWORD):
    return client.post("/session", data={"email_or_username": identifier, "password": password})


@pytest.fixture
def user_id(app):
    return add_user(app)


@pytest.fixture
def admin_id(app):
    return add_user(app, name="Admin", username="admin", email="admin@example.com", admin=True)


@pytest.fixture
def admin_client(client, admin_id):
    sign_in(client, "admin")
    return client


@pytest.fixture
def user_client(client, user_id):
    sign_in(client, "daisy")
    return client


def future(days=30):
    return date.today() + timedelta(days=days)
