"""
Configuration, logging, file and dependency-injection utilities.
"""
