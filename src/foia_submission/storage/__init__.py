"""SQLite storage for FOIA requests and the submission queue."""
