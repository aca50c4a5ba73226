"""Core configuration, database, logging and error types"""
