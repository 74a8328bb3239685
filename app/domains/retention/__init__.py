"""
Retention Bounded Context

Customer segmentation, real-time sales analytics and abandoned cart recovery.
"""
