"""
Binary referral-tree engine.

Placement of new members into the binary tree and structural queries
over it (subtrees, lineage, legs, downline search).
"""
