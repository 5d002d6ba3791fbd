"""Hosted services exposing the data layer."""
