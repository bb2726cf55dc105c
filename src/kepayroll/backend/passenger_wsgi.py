"""WSGI entrypoint for serving the kepayroll API behind Passenger or gunicorn."""

from kepayroll.backend.app import create_app

# Passenger expects a module-level variable named ``application``.
application = create_app()
