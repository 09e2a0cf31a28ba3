"""Small encoders shared by the protocol layer."""
