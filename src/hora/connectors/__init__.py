"""Front-ends that drive the lifecycle controller."""
