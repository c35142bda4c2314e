"""
confreview/stores: persistence-backed operations outside the core workflow:
accounts, registrations, support tickets and the visitor counter.

    from confreview.stores import users, registrations, support, visitors
"""
