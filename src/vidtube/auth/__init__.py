"""Authentication core.

Learn: Users log in with username-or-email + password and receive a JWT
access/refresh pair. The pieces, leaves first:
1. password.CredentialVerifier → bcrypt check, fails closed
2. jwt.TokenIssuer → mints the pair with two independent secrets
3. sessions.TokenRotationCoordinator → single-use refresh tokens via
   compare-and-set on the user row
4. sessions.SessionTerminator → logout clears the stored token
5. dependencies → resolves the access token on incoming requests
"""
