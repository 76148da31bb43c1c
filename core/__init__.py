"""core/ -- Kernel shared by every layer: configuration, errors, database, migrations, mail.

Layer rule: core/ imports only stdlib + third-party libraries.
It does NOT import from api/ or auth/.
"""
