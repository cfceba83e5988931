"""
ensbid core: codec, state oracle, commitments, sessions and orchestration.
"""
