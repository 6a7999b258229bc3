"""
Low level reading of the NK2 format: byte streams, header and footer records,
item record scanning, value decryption and allocation ranges.
"""
