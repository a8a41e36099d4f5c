"""
Feature modules for the iGarage360 backend.

auth: staff sign-in, quick access by PIN or manager password, screen lock,
login surfaces and role capabilities, one session per shop terminal.

Modules expose Protocols in interfaces.py and keep Supabase access behind
them, so services can be tested with in-memory stores.
"""
