# backend/app.py
import logging
import os

from flask import Flask, render_template, redirect, url_for, request, flash, jsonify
from flask_wtf.csrf import CSRFProtect
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

import helpers
from auth import authenticate, require_admin, require_owner, require_signed_in, with_context, current_context
from config import Config
from errors import InvalidCredentials, Unauthorized, ValidationFailed
from models import db, User, Movie, Review, delete_movie
from validators import (
    MovieValidator, ReviewValidator, UserValidator,
    movie_attributes, review_attributes, user_attributes,
)

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"

USER_FIELDS = ("name", "email", "username", "password", "password_confirmation")
PASSWORD_FIELDS = ("password", "password_confirmation")

csrf = CSRFProtect()


def form_snapshot(fields):
    """Submitted values for ``fields``; passwords are kept exactly as typed."""
    record = {}
    for field in fields:
        value = request.form.get(field)
        if value is not None and field not in PASSWORD_FIELDS:
            value = value.strip()
        record[field] = value
    return record


def create_app(config_class=Config, overrides=None):
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_object(config_class)
    app.config["SQLALCHEMY_DATABASE_URI"] = config_class.database_uri()
    if overrides:
        app.config.update(overrides)

    if not app.testing:
        logging.basicConfig(level=app.config["LOG_LEVEL"], format=LOG_FORMAT)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    csrf.init_app(app)
    helpers.register(app)
    app.add_template_global(Movie.RATINGS, "ratings")

    # Ensure DB tables exist
    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as e:
            app.logger.warning("DB create_all warning: %s", e)

    def movie_validator(record_id=None):
        return MovieValidator(app.config["IMAGES_DIR"], record_id=record_id)

    @app.context_processor
    def inject_identity():
        ctx = current_context()
        return {"current_user": ctx.current_user, "is_admin": ctx.is_admin}

    # ---------------- ERRORS ----------------
    @app.errorhandler(Unauthorized)
    def unauthorized(e):
        flash(e.message, "danger")
        return redirect(e.location, code=303)

    @app.errorhandler(404)
    def not_found(e):
        return render_template("errors/404.html"), 404

    @app.errorhandler(SQLAlchemyError)
    def store_error(e):
        db.session.rollback()
        app.logger.error("Store operation failed on %s %s: %s", request.method, request.path, e)
        return render_template("errors/500.html"), 500

    # ---------------- HEALTH ----------------
    @app.route("/up")
    def health():
        db.session.execute(text("SELECT 1"))
        return "OK"

    # ---------------- HOME ----------------
    @app.route("/")
    def home():
        return render_template("movies/index.html", movies=Movie.released_catalog())

    # ---------------- MOVIES ----------------
    @app.route("/movies")
    @with_context
    def movies_index(ctx):
        if ctx.is_admin:
            movies = Movie.query.order_by(Movie.released_on.desc(), Movie.id.asc()).all()
        else:
            movies = Movie.released_catalog()
        return render_template("movies/index.html", movies=movies)

    @app.route("/movies/<int:movie_id>")
    def movie_show(movie_id):
        movie = db.get_or_404(Movie, movie_id)
        return render_template("movies/show.html", movie=movie)

    @app.route("/movies/new")
    @with_context
    def movie_new(ctx):
        require_admin(ctx)
        record = dict.fromkeys(Movie.FIELDS, "")
        record["total_gross"] = "0"
        return render_template("movies/form.html", record=record, errors={}, movie=None)

    @app.route("/movies", methods=["POST"])
    @with_context
    def movie_create(ctx):
        require_admin(ctx)
        record = form_snapshot(Movie.FIELDS)
        try:
            movie_validator().validate(record)
        except ValidationFailed as e:
            return render_template("movies/form.html", record=record, errors=e.errors, movie=None), 422

        movie = Movie(**movie_attributes(record))
        db.session.add(movie)
        db.session.commit()

        app.logger.info("Created movie %s: %s", movie.id, movie.title)
        flash("Movie successfully created!", "success")
        return redirect(url_for("movie_show", movie_id=movie.id))

    @app.route("/movies/<int:movie_id>/edit")
    @with_context
    def movie_edit(ctx, movie_id):
        require_admin(ctx)
        movie = db.get_or_404(Movie, movie_id)
        return render_template("movies/form.html", record=movie.snapshot(), errors={}, movie=movie)

    @app.route("/movies/<int:movie_id>/edit", methods=["PATCH", "POST"])
    @app.route("/movies/<int:movie_id>", methods=["PATCH"])
    @with_context
    def movie_update(ctx, movie_id):
        require_admin(ctx)
        movie = db.get_or_404(Movie, movie_id)
        record = form_snapshot(Movie.FIELDS)
        try:
            movie_validator(record_id=movie.id).validate(record)
        except ValidationFailed as e:
            return render_template("movies/form.html", record=record, errors=e.errors, movie=movie), 422

        for field, value in movie_attributes(record).items():
            setattr(movie, field, value)
        db.session.commit()

        app.logger.info("Updated movie %s: %s", movie.id, movie.title)
        flash("Movie successfully updated!", "success")
        return redirect(url_for("movie_show", movie_id=movie.id))

    @app.route("/movies/<int:movie_id>", methods=["DELETE"])
    @app.route("/movies/<int:movie_id>/delete", methods=["POST"])
    @with_context
    def movie_destroy(ctx, movie_id):
        require_admin(ctx)
        movie = db.get_or_404(Movie, movie_id)
        delete_movie(movie)
        flash("Movie successfully deleted!", "success")
        return redirect(url_for("movies_index"), code=303)

    # ---------------- API MOVIE ----------------
    @app.route("/api/movies/<int:movie_id>")
    def api_movie(movie_id):
        m = db.session.get(Movie, movie_id)
        if not m:
            return jsonify({"error": "not found"}), 404

        return jsonify({
            "id": m.id,
            "title": m.title,
            "director": m.director,
            "released_on": m.released_on.isoformat(),
            "duration": m.duration,
            "rating": m.rating,
            "total_gross": float(m.total_gross) if m.total_gross is not None else None,
            "image_file_name": m.image_file_name,
            "released": m.is_released(),
            "flop": m.is_flop(),
            "average_rating": m.average_rating(),
            "reviews_count": len(m.reviews),
        })

    # ---------------- REVIEWS ----------------
    @app.route("/movies/<int:movie_id>/reviews")
    def reviews_index(movie_id):
        movie = db.get_or_404(Movie, movie_id)
        return render_template("reviews/index.html", movie=movie, reviews=movie.reviews)

    @app.route("/movies/<int:movie_id>/reviews/new")
    def review_new(movie_id):
        movie = db.get_or_404(Movie, movie_id)
        record = dict.fromkeys(Review.FIELDS, "")
        return render_template("reviews/new.html", movie=movie, record=record, errors={})

    @app.route("/movies/<int:movie_id>/reviews", methods=["POST"])
    def review_create(movie_id):
        movie = db.get_or_404(Movie, movie_id)
        record = form_snapshot(Review.FIELDS)
        try:
            ReviewValidator().validate(record)
        except ValidationFailed as e:
            return render_template("reviews/new.html", movie=movie, record=record, errors=e.errors), 422

        review = Review(movie=movie, **review_attributes(record))
        db.session.add(review)
        db.session.commit()

        app.logger.info("Review %s added to movie %s", review.id, movie.id)
        flash("Thanks for your review!", "success")
        return redirect(url_for("reviews_index", movie_id=movie.id))

    # ---------------- USERS ----------------
    @app.route("/users")
    @with_context
    def users_index(ctx):
        require_signed_in(ctx)
        users = User.query.order_by(User.name).all()
        return render_template("users/index.html", users=users)

    @app.route("/users/new")
    def user_new():
        record = dict.fromkeys(User.FIELDS, "")
        return render_template("users/form.html", record=record, errors={}, user=None)

    @app.route("/users", methods=["POST"])
    @with_context
    def user_create(ctx):
        record = form_snapshot(USER_FIELDS)
        try:
            UserValidator().validate(record)
        except ValidationFailed as e:
            return render_template("users/form.html", record=record, errors=e.errors, user=None), 422

        user = User(**user_attributes(record))
        db.session.add(user)
        db.session.commit()
        ctx.sign_in(user)

        app.logger.info("New user signed up: %s", user.username)
        flash("Thanks for signing up!", "success")
        return redirect(url_for("user_show", user_id=user.id))

    @app.route("/users/<user_id>")
    @with_context
    def user_show(ctx, user_id):
        require_signed_in(ctx)
        user = db.get_or_404(User, user_id)
        return render_template("users/show.html", user=user)

    @app.route("/users/<user_id>/edit")
    @with_context
    def user_edit(ctx, user_id):
        require_owner(ctx, user_id)
        user = ctx.current_user
        return render_template("users/form.html", record=user.snapshot(), errors={}, user=user)

    @app.route("/users/<user_id>/edit", methods=["PATCH", "POST"])
    @app.route("/users/<user_id>", methods=["PATCH"])
    @with_context
    def user_update(ctx, user_id):
        require_owner(ctx, user_id)
        user = ctx.current_user
        record = form_snapshot(USER_FIELDS)
        try:
            UserValidator(record_id=user.id, require_password=False).validate(record)
        except ValidationFailed as e:
            return render_template("users/form.html", record=record, errors=e.errors, user=user), 422

        for field, value in user_attributes(record).items():
            setattr(user, field, value)
        db.session.commit()

        app.logger.info("User %s updated their account", user.id)
        flash("Account successfully updated!", "success")
        return redirect(url_for("user_show", user_id=user.id))

    @app.route("/users/<user_id>", methods=["DELETE"])
    @app.route("/users/<user_id>/delete", methods=["POST"])
    @with_context
    def user_destroy(ctx, user_id):
        require_owner(ctx, user_id)
        db.session.delete(ctx.current_user)
        db.session.commit()
        ctx.sign_out()

        app.logger.info("User %s deleted their account", user_id)
        flash("Account successfully deleted!", "danger")
        return redirect(url_for("movies_index"), code=303)

    # ---------------- SESSION ----------------
    @app.route("/signin")
    def signin():
        return render_template("sessions/new.html", identifier="")

    @app.route("/session", methods=["POST"])
    @with_context
    def session_create(ctx):
        identifier = (request.form.get("email_or_username") or "").strip()
        password = request.form.get("password") or ""

        try:
            user_id = authenticate(identifier, password)
        except InvalidCredentials as e:
            return render_template("sessions/new.html", identifier=identifier, alert=e.message), 422

        user = db.session.get(User, user_id)
        ctx.sign_in(user)

        app.logger.info("User %s signed in", user.username)
        flash(f"Welcome back, {user.name}!", "success")
        return redirect(ctx.pop_intended_url() or url_for("user_show", user_id=user.id))

    @app.route("/signout", methods=["DELETE", "POST"])
    @with_context
    def signout(ctx):
        if ctx.current_user:
            app.logger.info("User %s signed out", ctx.current_user.username)
        ctx.sign_out()
        flash("You're now signed out!", "info")
        return redirect(url_for("movies_index"), code=303)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=(os.getenv("FLASK_ENV") == "development"))
