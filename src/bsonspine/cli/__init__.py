"""bson-spine command line interface (``bsonspine``)."""
