"""Allow ``python -m secure_stream`` to start the service."""

from secure_stream.main import run

run()
