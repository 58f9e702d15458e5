"""authgate: OAuth2 authorization-code sign-in with signed cookie sessions."""
