"""Shared fakes and builders for ghrelay tests."""
