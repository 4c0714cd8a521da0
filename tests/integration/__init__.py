"""Integration tests package.

Integration tests run SqlJournalStore against a real PostgreSQL database
(TESTING_DATABASE_URL, or the local docker-compose database). They are
skipped automatically when nothing listens on localhost:5432.

Run with:
    pytest -m integration tests/integration/

Or exclude integration tests:
    pytest -m "not integration"
"""
