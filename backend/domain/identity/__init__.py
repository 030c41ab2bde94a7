"""Identity domain module.

Manages authenticated identities, their role (student or vendor) and the
role-specific profile documents seeded at sign-up.
"""
