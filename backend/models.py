# backend/models.py
from datetime import date, datetime
import logging

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from uuid6 import uuid7
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def new_user_id():
    return str(uuid7())


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(36), primary_key=True, default=new_user_id)
    name = db.Column(db.String(100), nullable=False)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    FIELDS = ("name", "email", "username")

    @property
    def password(self):
        raise AttributeError("password is write-only")

    @password.setter
    def password(self, plain):
        self.password_hash = generate_password_hash(plain)

    def check_password(self, plain):
        return bool(self.password_hash) and check_password_hash(self.password_hash, plain)

    @classmethod
    def find_by_login(cls, identifier):
        """Case-insensitive lookup by email first, then username."""
        ident = (identifier or "").strip().lower()
        if not ident:
            return None
        return (cls.query.filter(func.lower(cls.email) == ident).first()
                or cls.query.filter(func.lower(cls.username) == ident).first())

    def snapshot(self):
        return {f: getattr(self, f) for f in self.FIELDS}

    def __repr__(self):
        return f"<User {self.username}>"


class Movie(db.Model):
    __tablename__ = "movies"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    director = db.Column(db.String(200), nullable=False)
    released_on = db.Column(db.Date, nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # minutes
    rating = db.Column(db.String(5), nullable=False)
    total_gross = db.Column(db.Numeric(15, 2), default=0)
    image_file_name = db.Column(db.String(255))  # filename relative to IMAGES_DIR
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # reviews are removed explicitly by delete_movie, never by the ORM
    reviews = db.relationship("Review", back_populates="movie",
                              order_by="Review.id", passive_deletes="all")

    __table_args__ = (db.UniqueConstraint("title", "director", name="uq_movies_title_director"),)

    RATINGS = ("G", "PG", "PG-13", "R", "NC-17")
    FLOP_THRESHOLD = 225_000_000
    FIELDS = ("title", "director", "released_on", "duration", "rating",
              "total_gross", "image_file_name")

    def is_flop(self):
        return self.total_gross is None or self.total_gross < self.FLOP_THRESHOLD

    def is_released(self):
        return self.released_on is not None and self.released_on <= date.today()

    def average_rating(self):
        stars = [r.stars for r in self.reviews]
        if not stars:
            return 0.0
        return sum(stars) / len(stars)

    @classmethod
    def released_catalog(cls):
        return (cls.query
                .filter(cls.released_on <= date.today())
                .order_by(cls.released_on.desc(), cls.id.asc())
                .all())

    def snapshot(self):
        return {f: getattr(self, f) for f in self.FIELDS}

    def __repr__(self):
        return f"<Movie {self.title!r} ({self.director})>"


class Review(db.Model):
    __tablename__ = "reviews"
    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(db.Integer, db.ForeignKey("movies.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    comment = db.Column(db.Text, nullable=False)
    stars = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    movie = db.relationship("Movie", back_populates="reviews")

    STARS = (1, 2, 3, 4, 5)
    FIELDS = ("name", "comment", "stars")


def delete_movie(movie):
    """Delete a movie's reviews, then the movie, in one transaction."""
    movie_id, title = movie.id, movie.title
    try:
        removed = Review.query.filter_by(movie_id=movie_id).delete(synchronize_session=False)
        db.session.delete(movie)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("Deleted movie %s (%s) and %d review(s)", movie_id, title, removed)
    return removed
