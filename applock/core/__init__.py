"""AppLock core: state model, decision engine, storage and controller."""
