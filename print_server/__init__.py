"""
Print Server
Local print service: HTTP and in-process print requests dispatched to OS print queues
"""

__version__ = "1.0.0"
