"""
Auth package for the Minify API.

HTTP Basic authentication. Password hashes are kept by the app's storage
beside the account row; the authenticated username is the account id handed
to the core. Nothing in the manager layer knows about credentials.
"""
