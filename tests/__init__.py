"""
Test suite for tenantsync.

- Unit tests run against an in-memory fake of the PostgreSQL catalog
- Integration tests need a real server (TENANTSYNC_TEST_DSN)
"""
