"""Small helpers shared across ghrelay sub-packages."""
