"""HotelOps - hotel property management backend"""

__version__ = "0.1.0"
