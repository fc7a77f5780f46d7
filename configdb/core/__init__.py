"""
Core config DB client: façade, mutation policies, scanning, pipelining.
"""
