"""Allow ``python -m auth_service``."""

from .app import main

main()
