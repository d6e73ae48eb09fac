# Overview: Service layer; every function takes the SQLAlchemy session as its first argument.
