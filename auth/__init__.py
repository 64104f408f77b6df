"""auth/ -- Credential authentication and token issuance for the SSO service.

Layer rule: auth/ imports only stdlib + third-party libraries, plus
core.config for the Settings type. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
