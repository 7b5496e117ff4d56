"""Exporter for the Netgear CM600's DocsisStatus.asp page.

Other Netgear DOCSIS 3.0 modems (C3700, CM500 ...) appear to use the same dsTable/usTable
markup, so this may well work beyond the CM600. Only the CM600 has been tested.
"""
