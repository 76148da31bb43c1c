"""core/migrations/ -- Schema migrations, applied in file-name order by core/migrator.py."""
