import unittest
from dosing_engine import ToxinDosageEngine, MuscleSelection, DosingSession
from reference_data import ReferenceDataStore, load_reference_data
from models import (
    Patient,
    InvalidPatientData,
    ReferenceNotFound,
    UnknownBrandError,
    UnknownPathologyError,
)
from constants import (
    ToxinBrand, DosageTier, MuscleDoseRange, PEDIATRIC_CONSTANTS, TOXIN_LIBRARY, round_units,
)

class TestAdjustmentFactor(unittest.TestCase):

    def test_01_adult_or_missing_data_is_unadjusted(self):
        self.assertEqual(ToxinDosageEngine.adjustment_factor(None, 20.0), 1.0)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(5, None), 1.0)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(None, None), 1.0)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(18, 10.0), 1.0)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(45, 70.0), 1.0)

    def test_02_band_2_to_6_clamps_low_weight(self):
        # 18 / 55 = 0.327 -> raised to the band minimum
        self.assertEqual(ToxinDosageEngine.adjustment_factor(5, 18), 0.5)

    def test_03_band_values_inside_bounds_are_kept(self):
        self.assertAlmostEqual(ToxinDosageEngine.adjustment_factor(5, 33), 0.6, places=9)
        self.assertAlmostEqual(ToxinDosageEngine.adjustment_factor(10, 35), 0.7, places=9)

    def test_04_band_maximums(self):
        self.assertEqual(ToxinDosageEngine.adjustment_factor(5, 50), 0.7)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(1, 60), 0.5)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(15, 60), 1.0)

    def test_05_infant_band_minimum(self):
        self.assertEqual(ToxinDosageEngine.adjustment_factor(0, 3.0), 0.3)
        self.assertEqual(ToxinDosageEngine.adjustment_factor(1, 12.0), 0.3)

    def test_06_factor_always_within_band(self):
        weights = [0.5, 1, 3.2, 8, 15, 22.5, 40, 80, 150]
        for age in range(0, PEDIATRIC_CONSTANTS.ADULT_AGE_YEARS):
            band = ToxinDosageEngine._select_age_band(age)
            for weight in weights:
                factor = ToxinDosageEngine.adjustment_factor(age, weight)
                self.assertGreaterEqual(factor, band.min_factor, f"age={age} weight={weight}")
                self.assertLessEqual(factor, band.max_factor, f"age={age} weight={weight}")
                self.assertGreater(factor, 0.0)
                self.assertLessEqual(factor, 1.0)

    def test_07_bands_cover_childhood_without_gaps(self):
        bands = PEDIATRIC_CONSTANTS.AGE_BANDS
        self.assertEqual(bands[0].lower_years, 0)
        self.assertEqual(bands[-1].upper_years, PEDIATRIC_CONSTANTS.ADULT_AGE_YEARS)
        for previous, current in zip(bands, bands[1:]):
            self.assertEqual(previous.upper_years, current.lower_years)

    def test_08_invalid_inputs_raise(self):
        with self.assertRaises(InvalidPatientData):
            ToxinDosageEngine.adjustment_factor(-1, 10)
        with self.assertRaises(InvalidPatientData):
            ToxinDosageEngine.adjustment_factor(5, 0)
        with self.assertRaises(InvalidPatientData):
            ToxinDosageEngine.adjustment_factor(5.5, 20)

class TestPatientValidation(unittest.TestCase):

    def test_valid_partial_patients(self):
        Patient()
        Patient(name="Ana")
        Patient(weight_kg=18)
        Patient(age_years=0, weight_kg=3.4)

    def test_rejects_bad_weight(self):
        for weight in (0, -3.0, float("nan"), "20", True):
            with self.assertRaises(InvalidPatientData, msg=repr(weight)):
                Patient(weight_kg=weight)

    def test_rejects_bad_age(self):
        for age in (-1, 4.5, 5.0, "5", True):
            with self.assertRaises(InvalidPatientData, msg=repr(age)):
                Patient(age_years=age)

    def test_mutated_patient_blocks_calculation(self):
        patient = Patient(age_years=5, weight_kg=18)
        patient.age_years = -2
        with self.assertRaises(InvalidPatientData):
            ToxinDosageEngine.compute_session("Botox", [("Frontalis", "min")], patient)

class TestReferenceData(unittest.TestCase):

    def setUp(self):
        self.store = load_reference_data()

    def test_lookup(self):
        frontalis = self.store.get_dose_range(ToxinBrand.BOTOX, "Frontalis")
        self.assertEqual((frontalis.min_units, frontalis.max_units), (10, 20))
        biceps = self.store.get_dose_range(ToxinBrand.DYSPORT, "Biceps brachii")
        self.assertEqual((biceps.min_units, biceps.max_units), (100, 300))

    def test_missing_muscle_is_reference_not_found(self):
        with self.assertRaises(ReferenceNotFound):
            self.store.get_dose_range(ToxinBrand.DYSPORT, "Frontalis")
        self.assertFalse(self.store.has_muscle(ToxinBrand.BOTOX, "Orbicularis oculi"))

    def test_session_limits(self):
        self.assertEqual(self.store.get_session_limit(ToxinBrand.BOTOX), 400)
        self.assertEqual(self.store.get_session_limit(ToxinBrand.DYSPORT), 1000)
        self.assertEqual(self.store.get_session_limit(ToxinBrand.XEOMIN), 400)

    def test_tables_are_asymmetric_and_ordered(self):
        self.assertEqual(len(self.store.list_muscles(ToxinBrand.DYSPORT)), 64)
        self.assertEqual(len(self.store.list_muscles(ToxinBrand.BOTOX)), 65)
        self.assertEqual(self.store.list_muscles(ToxinBrand.XEOMIN)[0], "Abductor hallucis")
        self.assertEqual(self.store.list_muscles(ToxinBrand.BOTOX),
                         tuple(TOXIN_LIBRARY.get(ToxinBrand.BOTOX)))

    def test_every_range_is_well_formed(self):
        for brand in ToxinBrand:
            for name in self.store.list_muscles(brand):
                r = self.store.get_dose_range(brand, name)
                self.assertLessEqual(r.min_units, r.max_units, f"{brand.value}/{name}")
                self.assertGreater(r.min_units, 0)

    def test_malformed_ranges_rejected_at_load(self):
        with self.assertRaises(ValueError):
            MuscleDoseRange(20, 10)
        with self.assertRaises(ValueError):
            MuscleDoseRange(0, 10)
        with self.assertRaises(ValueError):
            MuscleDoseRange(10, 12.5)

    def test_store_requires_every_session_limit(self):
        with self.assertRaises(ValueError):
            ReferenceDataStore(TOXIN_LIBRARY.SPECS, {ToxinBrand.BOTOX: 400}, ())

    def test_tables_are_read_only(self):
        with self.assertRaises(TypeError):
            self.store.dose_table(ToxinBrand.BOTOX)["Frontalis"] = MuscleDoseRange(1, 2)

    def test_loaded_once(self):
        self.assertIs(load_reference_data(), load_reference_data())

    def test_unknown_pathology(self):
        with self.assertRaises(UnknownPathologyError):
            self.store.get_pathology("tennis_elbow")

    def test_brand_parsing(self):
        self.assertIs(ToxinBrand.parse("botox"), ToxinBrand.BOTOX)
        self.assertIs(ToxinBrand.parse(" Dysport "), ToxinBrand.DYSPORT)
        with self.assertRaises(UnknownBrandError):
            ToxinBrand.parse("Myobloc")

    def test_half_up_rounding(self):
        self.assertEqual(round_units(12.5), 13)
        self.assertEqual(round_units(12.49), 12)
        self.assertEqual(round_units(7.000000000000001), 7)
        self.assertEqual(round_units(0.5), 1)

class TestMuscleSelection(unittest.TestCase):

    def setUp(self):
        self.selection = MuscleSelection(ToxinBrand.BOTOX)

    def test_add_reads_reference_tier(self):
        self.assertTrue(self.selection.add_muscle("Frontalis", DosageTier.MIN))
        self.assertTrue(self.selection.add_muscle("Biceps brachii", "max"))
        muscles = self.selection.muscles
        self.assertEqual([m.name for m in muscles], ["Frontalis", "Biceps brachii"])
        self.assertEqual((muscles[1].base_amount, muscles[1].adjusted_amount), (100, 100))

    def test_re_add_is_a_no_op(self):
        self.selection.add_muscle("Frontalis", "min")
        once = self.selection.muscles
        self.assertFalse(self.selection.add_muscle("Frontalis", "max"))
        self.assertEqual(self.selection.muscles, once)

    def test_unknown_muscle_is_skipped(self):
        self.assertFalse(self.selection.add_muscle("Orbicularis oculi"))
        self.assertEqual(len(self.selection), 0)
        dysport = MuscleSelection(ToxinBrand.DYSPORT)
        self.assertFalse(dysport.add_muscle("Frontalis"))

    def test_adjusted_amount_uses_current_factor(self):
        selection = MuscleSelection(ToxinBrand.BOTOX, adjustment_factor=0.5)
        selection.add_muscle("Biceps brachii", "max")
        selection.add_muscle("Flexor digitorum superficialis", "min")  # 25 * 0.5 = 12.5
        amounts = [m.adjusted_amount for m in selection.muscles]
        self.assertEqual(amounts, [50, 13])

    def test_toggle_round_trip(self):
        selection = MuscleSelection(ToxinBrand.BOTOX, adjustment_factor=0.5)
        selection.add_muscle("Biceps brachii", "min")
        original = selection.muscles[0]

        self.assertTrue(selection.toggle_dosage_tier("Biceps brachii"))
        toggled = selection.muscles[0]
        self.assertEqual(toggled.dosage_type, DosageTier.MAX)
        self.assertEqual((toggled.base_amount, toggled.adjusted_amount), (100, 50))

        selection.toggle_dosage_tier("Biceps brachii")
        self.assertEqual(selection.muscles[0], original)
        self.assertEqual(original.adjusted_amount, 38)  # 37.5 rounds up

    def test_toggle_or_remove_absent_is_harmless(self):
        self.assertFalse(self.selection.toggle_dosage_tier("Frontalis"))
        self.assertFalse(self.selection.remove_muscle("Frontalis"))

    def test_remove(self):
        self.selection.add_muscle("Frontalis")
        self.selection.add_muscle("Trapecio")
        self.assertTrue(self.selection.remove_muscle("Frontalis"))
        self.assertEqual([m.name for m in self.selection.muscles], ["Trapecio"])

    def test_recompute_all_from_base_amounts(self):
        self.selection.add_muscle("Frontalis", "min")
        self.selection.add_muscle("Biceps brachii", "max")
        self.selection.recompute_all(0.7)
        self.assertEqual([m.adjusted_amount for m in self.selection.muscles], [7, 70])
        self.selection.recompute_all(1.0)
        self.assertEqual([m.adjusted_amount for m in self.selection.muscles], [10, 100])
        self.assertEqual([m.base_amount for m in self.selection.muscles], [10, 100])

    def test_muscles_are_copies(self):
        self.selection.add_muscle("Frontalis")
        snapshot = self.selection.muscles
        snapshot[0].adjusted_amount = 999
        self.assertEqual(self.selection.muscles[0].adjusted_amount, 10)

    def test_invalid_tier(self):
        with self.assertRaises(ValueError):
            self.selection.add_muscle("Frontalis", "medium")

class TestDosingSession(unittest.TestCase):

    def setUp(self):
        self.session = DosingSession()
        self.session.select_brand("Botox")

    def test_patient_update_recomputes_selection(self):
        self.session.add_muscle("Biceps brachii", "max")
        self.session.update_patient(Patient(age_years=5, weight_kg=18))
        self.assertEqual(self.session.muscles[0].adjusted_amount, 50)
        self.session.update_patient(Patient(age_years=30, weight_kg=70))
        self.assertEqual(self.session.muscles[0].adjusted_amount, 100)

    def test_invalid_patient_update_keeps_previous_state(self):
        self.session.update_patient(Patient(age_years=5, weight_kg=18))
        bad = Patient(age_years=5, weight_kg=18)
        bad.weight_kg = 0
        with self.assertRaises(InvalidPatientData):
            self.session.update_patient(bad)
        self.assertEqual(self.session.patient.weight_kg, 18)

    def test_brand_switch_clears_protocol_and_selection(self):
        self.session.select_pathology("cervical_dystonia")
        self.session.apply_protocol()
        self.assertEqual(len(self.session.muscles), 3)
        self.session.select_brand("Dysport")
        self.assertIsNone(self.session.pathology_id)
        self.assertEqual(self.session.muscles, [])

    def test_same_brand_keeps_selection(self):
        self.session.add_muscle("Frontalis")
        self.session.select_brand(ToxinBrand.BOTOX)
        self.assertEqual(len(self.session.muscles), 1)

    def test_pathology_switch_clears_selection(self):
        self.session.add_muscle("Gracilis", "max")
        self.session.select_pathology("upper_limb_spasticity")
        self.assertEqual(self.session.muscles, [])

    def test_unknown_pathology_rejected(self):
        with self.assertRaises(UnknownPathologyError):
            self.session.select_pathology("tennis_elbow")

    def test_calculate_requires_brand(self):
        session = DosingSession()
        self.assertFalse(session.add_muscle("Frontalis"))
        self.assertEqual(session.apply_protocol(), [])
        with self.assertRaises(ValueError):
            session.calculate()

    def test_reset(self):
        self.session.add_muscle("Frontalis")
        self.session.update_patient(Patient(name="Ana", age_years=7, weight_kg=25))
        self.session.reset()
        self.assertIsNone(self.session.brand)
        self.assertEqual(self.session.patient, Patient())
        self.assertEqual(self.session.muscles, [])

if __name__ == '__main__':
    unittest.main()
