"""Distant: work with files and processes on a remote machine."""
