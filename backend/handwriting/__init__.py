"""
Client-resident data layer for a collaborative handwriting collection:
replica store, optimistic synchronization, authorization/workflow policy and
rating aggregation.
"""
