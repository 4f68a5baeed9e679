# backend/validators.py
"""Record validation.

Each validator holds an ordered list of ``Rule`` entries, every rule a
predicate over a record snapshot (a plain mapping of field -> raw value,
taken from submitted form data or from a model's ``snapshot()``) plus the
message reported when it fails.  Rules run in order; once a field has failed,
its later rules are skipped, but every field is checked, so the result
carries at most one message per field.
"""
import os
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from errors import ValidationFailed
from models import Movie, Review, User

BLANK = "can't be blank"
TAKEN = "has already been taken"

DATE_RE = re.compile(r"\A\d{4}-\d{2}-\d{2}\Z")
INT_RE = re.compile(r"\A[+-]?\d+\Z")
IMAGE_RE = re.compile(r"\A\w+([-_]\w+)*\.(jpg|png)\Z", re.IGNORECASE | re.ASCII)
USERNAME_RE = re.compile(r"\A[A-Za-z0-9]+\Z")
EMAIL_RE = re.compile(
    r"\A[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\Z"
)


# ---------------- COERCION ----------------

def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def to_date(value):
    """A date from a date object or a YYYY-MM-DD string; None if neither."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and DATE_RE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def to_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and INT_RE.match(value.strip()):
        return int(value.strip())
    return None


def to_decimal(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class Rule:
    __slots__ = ("field", "check", "message")

    def __init__(self, field, check, message):
        self.field = field
        self.check = check
        self.message = message

    def __repr__(self):
        return f"<Rule {self.field}: {self.message}>"


def present(field):
    return lambda v, rec: not is_blank(rec.get(field))


class Validator:
    rules = ()

    def check(self, record):
        """Return the field -> [message] mapping for ``record``; empty when valid."""
        errors = {}
        for rule in self.rules:
            if rule.field in errors:
                continue
            if not rule.check(self, record):
                errors[rule.field] = [rule.message]
        return errors

    def validate(self, record):
        errors = self.check(record)
        if errors:
            raise ValidationFailed(errors)
        return record


# ---------------- MOVIE ----------------

def _movie_unique(v, rec):
    title, director = rec.get("title"), rec.get("director")
    if is_blank(title) or is_blank(director):
        return True
    q = Movie.query.filter(Movie.title == title.strip(), Movie.director == director.strip())
    if v.record_id is not None:
        q = q.filter(Movie.id != v.record_id)
    return q.first() is None


def _movie_released_on(v, rec):
    return to_date(rec.get("released_on")) is not None


def _movie_duration(v, rec):
    minutes = to_int(rec.get("duration"))
    return minutes is not None and 0 < minutes <= 500


def _movie_rating(v, rec):
    return rec.get("rating") in Movie.RATINGS


def _gross_is_number(v, rec):
    return to_decimal(rec.get("total_gross")) is not None


# Numeric(15, 2) leaves 13 digits before the point
GROSS_LIMIT = Decimal(10) ** 13


def _gross_fits(v, rec):
    return abs(to_decimal(rec.get("total_gross"))) < GROSS_LIMIT


def _gross_for_release(v, rec):
    released_on = to_date(rec.get("released_on"))
    if released_on is None or released_on > v.today:
        return True
    return to_decimal(rec.get("total_gross")) >= 0


def _gross_before_release(v, rec):
    released_on = to_date(rec.get("released_on"))
    if released_on is None or released_on <= v.today:
        return True
    return to_decimal(rec.get("total_gross")) == 0


def _image_format(v, rec):
    name = rec.get("image_file_name")
    return isinstance(name, str) and IMAGE_RE.match(name) is not None


def _image_exists(v, rec):
    return os.path.isfile(os.path.join(v.images_dir, rec["image_file_name"]))


class MovieValidator(Validator):
    rules = (
        Rule("title", present("title"), BLANK),
        Rule("director", present("director"), BLANK),
        Rule("released_on", present("released_on"), BLANK),
        Rule("duration", present("duration"), BLANK),
        Rule("title", _movie_unique, TAKEN),
        Rule("released_on", _movie_released_on, "is not a valid date"),
        Rule("duration", _movie_duration, "must be an integer between 1 and 500"),
        Rule("rating", _movie_rating, "is not included in the list"),
        Rule("total_gross", _gross_is_number, "is not a number"),
        Rule("total_gross", _gross_fits, "must be less than 10,000,000,000,000"),
        Rule("total_gross", _gross_for_release,
             "must be greater than or equal to 0 for released movies"),
        Rule("total_gross", _gross_before_release, "must be 0 for unreleased movies"),
        Rule("image_file_name", _image_format, "must be a JPG or PNG image"),
        Rule("image_file_name", _image_exists,
             "does not refer to an existing image in the images directory"),
    )

    def __init__(self, images_dir, record_id=None, today=None):
        self.images_dir = images_dir
        self.record_id = record_id
        self.today = today or date.today()


def movie_attributes(rec):
    """Typed column values for a snapshot that passed MovieValidator."""
    return {
        "title": rec["title"].strip(),
        "director": rec["director"].strip(),
        "released_on": to_date(rec["released_on"]),
        "duration": to_int(rec["duration"]),
        "rating": rec["rating"],
        "total_gross": to_decimal(rec["total_gross"]),
        "image_file_name": rec["image_file_name"],
    }


# ---------------- REVIEW ----------------

def _comment_length(v, rec):
    return len((rec.get("comment") or "").strip()) >= 4


def _stars(v, rec):
    return to_int(rec.get("stars")) in Review.STARS


class ReviewValidator(Validator):
    rules = (
        Rule("name", present("name"), BLANK),
        Rule("comment", _comment_length, "is too short (minimum is 4 characters)"),
        Rule("stars", _stars, "must be between 1 and 5"),
    )


def review_attributes(rec):
    return {
        "name": rec["name"].strip(),
        "comment": rec["comment"].strip(),
        "stars": to_int(rec["stars"]),
    }


# ---------------- USER ----------------

def _unique_ci(column):
    def check(v, rec):
        value = rec.get(column.key)
        if is_blank(value):
            return True
        q = User.query.filter(func.lower(column) == value.strip().lower())
        if v.record_id is not None:
            q = q.filter(User.id != v.record_id)
        return q.first() is None
    return check


def _email_format(v, rec):
    return EMAIL_RE.match(rec["email"].strip()) is not None


def _username_format(v, rec):
    return USERNAME_RE.match(rec["username"].strip()) is not None


def _password_given(v, rec):
    return not v.require_password or not is_blank(rec.get("password"))


def _password_length(v, rec):
    password = rec.get("password")
    return not password or len(password) >= 6


def _password_confirmed(v, rec):
    password, confirmation = rec.get("password"), rec.get("password_confirmation")
    if not password or confirmation is None:
        return True
    return password == confirmation


class UserValidator(Validator):
    rules = (
        Rule("name", present("name"), BLANK),
        Rule("email", present("email"), BLANK),
        Rule("email", _email_format, "is invalid"),
        Rule("email", _unique_ci(User.email), TAKEN),
        Rule("username", present("username"), BLANK),
        Rule("username", _username_format, "is invalid"),
        Rule("username", _unique_ci(User.username), TAKEN),
        Rule("password", _password_given, BLANK),
        Rule("password", _password_length, "is too short (minimum is 6 characters)"),
        Rule("password_confirmation", _password_confirmed, "doesn't match Password"),
    )

    def __init__(self, record_id=None, require_password=True):
        self.record_id = record_id
        self.require_password = require_password


def user_attributes(rec):
    attrs = {
        "name": rec["name"].strip(),
        "email": rec["email"].strip(),
        "username": rec["username"].strip(),
    }
    # blank password on edit keeps the stored hash
    if rec.get("password"):
        attrs["password"] = rec["password"]
    return attrs
