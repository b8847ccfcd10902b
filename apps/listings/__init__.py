"""Listings app package.

Holds the hostel ``Listing`` model and the inventory store that owns its
room counters. Listing CRUD, search and moderation screens are handled
by other services; this app only exposes what the booking core needs.
"""
