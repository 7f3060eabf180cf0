"""
Core of the clinic backend: exceptions, tenancy, application wiring.
"""
