"""
LMS domain layer: persistence models and the services the LTI launch
endpoints are built on.
"""
