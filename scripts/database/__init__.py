"""
Database Maintenance Scripts

This module contains utilities for database maintenance operations:
- Connection handling for SQLite files and PostgreSQL servers
- Backups before destructive operations
- Replaying migration / maintenance scripts statement by statement
- Clearing tables and resetting sequences
- Read-only verification and status reports
"""
