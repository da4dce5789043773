"""
Todo front end package.

This module marks the 'src.web' directory as a Python package. The FastAPI
app lives in src.web.main; build fresh instances with create_app().
"""
