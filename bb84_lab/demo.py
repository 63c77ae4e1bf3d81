"""Lightweight manual smoke run of a full BB84 session."""

import logging

from .bases import Party
from .encoding import bits_to_string
from .protocol import BB84Session, SessionConfig


def run_demo(message: str = "Hola, Bob! " * 12) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    session = BB84Session(SessionConfig(seed=42, eavesdropper_enabled=True))
    session.set_message(message)
    session.set_noise(True)
    for party in Party:
        session.randomize_bases(party)
    estimate = session.run_all()
    alice_key, bob_key = session.sifted_keys
    print(f"Bases iguales: {len(session.matching_indices)}")
    print(f"Clave Alice : {bits_to_string(alice_key)}")
    print(f"Clave Bob   : {bits_to_string(bob_key)}")
    print(f"Muestra     : {estimate.sample_size} bits, {estimate.error_count} errores")
    print(f"Error       : {estimate.error_rate:.2f}% -> {estimate.verdict.name if estimate.verdict else 'degenerate'}")


if __name__ == "__main__":
    run_demo()
