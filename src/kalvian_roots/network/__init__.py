"""
Family network resolution: ports, the network container, the builder and
the finished-network cache.
"""
