"""Line coding, carrier modulation and channel simulation for teaching."""
