"""
ensbid command line interface.
"""
