"""
cf-plugin describe plugin
"""
