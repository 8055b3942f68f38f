from .qrand import SecureRandom, HmacDRBG, system_random, seeded, qstream
