"""
cf-plugin tests
"""
