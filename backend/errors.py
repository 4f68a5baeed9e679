# backend/errors.py
# Unknown ids surface as werkzeug's NotFound through db.get_or_404.


class ValidationFailed(Exception):
    """A record failed validation; ``errors`` maps field -> list of messages."""

    def __init__(self, errors):
        super().__init__("Validation failed: " + ", ".join(sorted(errors)))
        self.errors = errors

    def full_messages(self):
        return [f"{field.replace('_', ' ').capitalize()} {msg}"
                for field, msgs in self.errors.items() for msg in msgs]


class Unauthorized(Exception):
    """Missing or insufficient identity; recovered as a redirect with an alert."""

    default_message = "Unauthorized access!"
    default_location = "/"

    def __init__(self, message=None, location=None):
        self.message = message or self.default_message
        self.location = location or self.default_location
        super().__init__(self.message)


class SignInRequired(Unauthorized):
    default_message = "Please sign in first!"
    default_location = "/signin"


class InvalidCredentials(Exception):
    # one message for unknown identifier and wrong password alike
    message = "Invalid (email or username)/password combination!"

    def __init__(self):
        super().__init__(self.message)
