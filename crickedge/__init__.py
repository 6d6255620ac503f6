"""
CrickEdge live player auction service.
"""
