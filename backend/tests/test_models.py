from datetime import date, timedelta
from decimal import Decimal
import uuid

import pytest

from helpers import total_gross, year_of
from models import db, User, Movie, Review, delete_movie
from conftest import add_movie, add_review, add_user, future


@pytest.mark.parametrize("gross, flop", [
    (None, True),
    (Decimal("0"), True),
    (Decimal("224999999"), True),
    (Decimal("225000000"), False),
    (Decimal("585366247"), False),
])
def test_flop_threshold(gross, flop):
    assert Movie(total_gross=gross).is_flop() is flop


def test_released_is_inclusive_of_today():
    assert Movie(released_on=date.today()).is_released()
    assert Movie(released_on=date.today() - timedelta(days=1)).is_released()
    assert not Movie(released_on=date.today() + timedelta(days=1)).is_released()


def test_average_rating(app):
    movie_id = add_movie(app)
    with app.app_context():
        assert db.session.get(Movie, movie_id).average_rating() == 0.0

    add_review(app, movie_id, stars=3)
    add_review(app, movie_id, stars=5)
    with app.app_context():
        assert db.session.get(Movie, movie_id).average_rating() == 4.0


def test_released_catalog_order(app):
    older = add_movie(app, title="Older", released_on=date(1999, 1, 1))
    newer = add_movie(app, title="Newer", released_on=date(2010, 1, 1))
    tie = add_movie(app, title="Tie", released_on=date(2010, 1, 1))
    add_movie(app, title="Soon", released_on=future(), total_gross=Decimal("0"))

    with app.app_context():
        ids = [m.id for m in Movie.released_catalog()]
    assert ids == [newer, tie, older]


def test_delete_movie_removes_its_reviews(app):
    doomed = add_movie(app)
    kept = add_movie(app, title="Captain Marvel", director="Anna Boden")
    add_review(app, doomed, stars=1)
    add_review(app, doomed, stars=2)
    kept_review = add_review(app, kept, stars=4)

    with app.app_context():
        removed = delete_movie(db.session.get(Movie, doomed))
        assert removed == 2
        assert db.session.get(Movie, doomed) is None
        assert Review.query.filter_by(movie_id=doomed).count() == 0
        assert [r.id for r in Review.query.all()] == [kept_review]


def test_user_ids_are_time_ordered_uuids(app):
    first = add_user(app)
    second = add_user(app, username="larry", email="larry@example.com")
    assert uuid.UUID(first).version == 7
    assert first < second


def test_password_is_hashed(app_ctx):
    user = User(password="secret123")
    assert user.password_hash != "secret123"
    assert user.check_password("secret123")
    assert not user.check_password("secret124")
    with pytest.raises(AttributeError):
        user.password


def test_find_by_login_ignores_case(app):
    user_id = add_user(app)
    with app.app_context():
        assert User.find_by_login("DAISY@example.com").id == user_id
        assert User.find_by_login("Daisy").id == user_id
        assert User.find_by_login("nobody") is None
        assert User.find_by_login("") is None


def test_template_helpers():
    assert total_gross(Movie(total_gross=Decimal("100"))) == "Flop!"
    assert total_gross(Movie(total_gross=Decimal("585366247"))) == "$585,366,247"
    assert year_of(Movie(released_on=date(2008, 5, 2))) == 2008
    assert year_of(Movie()) == "N/A"
