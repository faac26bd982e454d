"""Join, publish and index stages that turn raw artifacts into published files."""
