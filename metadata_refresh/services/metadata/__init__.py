"""Metadata repository refresh: fetch → parse → map → transactional replace."""
