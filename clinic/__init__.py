"""Clinic application for the telehealth backend.

This package contains models, serializers, services, views and route
registrations for patients, doctors, appointments, mock video meetings,
medical reports, health metrics and the health passport.
"""
