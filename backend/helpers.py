# backend/helpers.py
# Jinja filters for movie pages.


def total_gross(movie):
    if movie.is_flop():
        return "Flop!"
    return "${:,.0f}".format(movie.total_gross)


def year_of(movie):
    if movie.released_on is None:
        return "N/A"
    return movie.released_on.year


def register(app):
    app.add_template_filter(total_gross)
    app.add_template_filter(year_of)
