"""
Screening core: signal primitives, domain scorers, test sessions and
cross-domain aggregation.
"""
