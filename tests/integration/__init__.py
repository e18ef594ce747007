"""Integration tests for the pyhelki library.

These tests use real API credentials from the .env file and make actual API
calls. They only read state and are skipped when credentials are missing.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables required in .env:
    HELKI_API_NAME: API host name fragment, e.g. api-example
    HELKI_CLIENT_ID: OAuth2 client id
    HELKI_CLIENT_SECRET: OAuth2 client secret
    HELKI_USERNAME: Account user name
    HELKI_PASSWORD: Account password
    HELKI_TEST_DEV_ID: Device to test against (optional, defaults to the first device)
"""
