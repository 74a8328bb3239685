"""
Retention Domain Layer

Entities, value objects, events and segmentation rules for customer
retention: segmentation, real-time sales and cart recovery.
"""
