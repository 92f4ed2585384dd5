"""GPS wristband toolkit: UBX receiver configuration, NMEA parsing and Location and Speed encoding."""

__version__ = "0.1.0"