"""
Shipping Back-Office Maintenance Scripts

This package contains the database maintenance tooling:

- database/: Connection handling, backups, script replay, bulk clearing and
  verification, plus the command-line tools built on them.
"""
