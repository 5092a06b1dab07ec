"""
Service Assurance Tracker
Shared Flask-SQLAlchemy extension instance.

Every model module imports ``db`` from here so the app factory can bind a
single extension to the Flask application.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
