"""Tests for method encoding, validation and execution order."""

import numpy as np
import pytest

from data2states.exceptions import (
    BinCountExceededError,
    DependencyError,
    DuplicateAssignmentError,
    InputShapeError,
    InvalidMethodError,
    ProbabilityMismatchError,
    ProbabilityNormalizationError,
)
from data2states.methods import (
    EqualCount,
    EqualWidth,
    Identity,
    MaxMutualInfo,
    MethodKind,
    ProbabilityMode,
    check_against_raster,
    encode_methods,
    encode_row,
    execution_order,
    method_names,
    parse_method_name,
)


class TestParseMethodName:
    @pytest.mark.parametrize(
        "name, kind",
        [
            ("identity", MethodKind.IDENTITY),
            ("Nat", MethodKind.IDENTITY),
            ("equal-width", MethodKind.EQUAL_WIDTH),
            ("equal_width", MethodKind.EQUAL_WIDTH),
            ("UniWB", MethodKind.EQUAL_WIDTH),
            ("Equal Count", MethodKind.EQUAL_COUNT),
            ("UniCB", MethodKind.EQUAL_COUNT),
            ("max-mutual-information", MethodKind.MAX_MUTUAL_INFO),
            ("MaxMI", MethodKind.MAX_MUTUAL_INFO),
            ("poisson-mixture", MethodKind.POISSON_MIXTURE),
            ("PoisMLE", MethodKind.POISSON_MIXTURE),
        ],
    )
    def test_names_and_aliases(self, name, kind):
        assert parse_method_name(name) is kind

    def test_unknown_method(self):
        with pytest.raises(InvalidMethodError):
            parse_method_name("k-means")

    def test_non_string_method(self):
        with pytest.raises(InvalidMethodError):
            parse_method_name(3)

    def test_method_names_lists_aliases(self):
        names = method_names()
        assert set(names) == {
            "identity", "equal-width", "equal-count",
            "max-mutual-information", "poisson-mixture",
        }
        assert "maxmi" in names["max-mutual-information"]


class TestEncodeRow:
    def test_identity_ignores_params(self):
        assert encode_row(0, 0, 1, "identity", {"anything": 1}).params == Identity()

    @pytest.mark.parametrize("params", [3, [3], (3,), np.array([3])])
    def test_bin_payload_forms(self, params):
        assert encode_row(0, 0, 0, "equal-width", params).params == EqualWidth(bins=3)
        assert encode_row(0, 0, 0, "equal-count", params).params == EqualCount(bins=3)

    @pytest.mark.parametrize("params", [None, [], [2, 3], [0], [2.5], {"n": 2}, [True]])
    def test_bad_bin_payloads(self, params):
        with pytest.raises(InvalidMethodError):
            encode_row(0, 0, 0, "equal-width", params)

    def test_max_mi_four_values(self):
        method = encode_row(0, 1, 2, "max-mutual-information", [0, 3, 5, 2])
        assert method.params == MaxMutualInfo(ref_category=0, ref_variable=3, ref_time_bin=5, bins=2)
        assert method.params.reference == (0, 3)

    def test_max_mi_defaults_to_own_category(self):
        method = encode_row(0, 4, 2, "maxmi", [3, 5, 2])
        assert method.params.reference == (4, 3)

    @pytest.mark.parametrize("params", [[1, 2], {"variable": 1, "time_bin": 0, "bins": 2}])
    def test_max_mi_bad_payloads(self, params):
        with pytest.raises(InvalidMethodError):
            encode_row(0, 0, 0, "maxmi", params)

    def test_poisson_default(self):
        params = encode_row(0, 0, 0, "poisson-mixture", [3, "default", []]).params
        assert params.states == 3
        assert params.probability_mode is ProbabilityMode.DEFAULT
        assert params.probabilities is None
        assert params.weights(0).tolist() == pytest.approx([1 / 3] * 3)

    def test_poisson_set_probabilities(self):
        params = encode_row(0, 0, 0, "PoisMLE", [2, "set", [0.75, 0.25]]).params
        assert params.probability_mode is ProbabilityMode.SET
        assert params.probabilities.shape == (1, 2)
        assert params.weights(7).tolist() == [0.75, 0.25]

    def test_poisson_probability_rows(self):
        params = encode_row(
            0, 0, 0, "poisson-mixture", [2, "manual", [[0.5, 0.5], [0.9, 0.1]]]
        ).params
        assert params.probability_mode is ProbabilityMode.SET
        assert params.weights(1).tolist() == [0.9, 0.1]

    def test_poisson_set_without_probabilities(self):
        with pytest.raises(ProbabilityMismatchError):
            encode_row(0, 0, 0, "poisson-mixture", [2, "set"])

    def test_poisson_probability_count_mismatch(self):
        with pytest.raises(ProbabilityMismatchError):
            encode_row(0, 0, 0, "poisson-mixture", [3, "set", [0.5, 0.5]])

    def test_poisson_unknown_mode(self):
        with pytest.raises(InvalidMethodError):
            encode_row(0, 0, 0, "poisson-mixture", [2, "sometimes"])


class TestValidation:
    def test_duplicate_assignment(self):
        rows = [(0, 1, "equal-width", 2), (0, 1, "equal-count", 2)]
        with pytest.raises(DuplicateAssignmentError):
            encode_methods(rows)

    def test_same_variable_other_category_is_fine(self):
        rows = [(0, 1, "equal-width", 2), (1, 1, "equal-count", 2)]
        assert len(encode_methods(rows)) == 2

    def test_max_mi_reference_missing(self):
        with pytest.raises(DependencyError):
            encode_methods([(0, 0, "maxmi", [0, 1, 0, 2])])

    def test_max_mi_reference_poisson(self):
        rows = [(0, 0, "maxmi", [0, 1, 0, 2]), (0, 1, "poisson-mixture", [2])]
        with pytest.raises(DependencyError):
            encode_methods(rows)

    def test_max_mi_reference_identity(self):
        rows = [(0, 0, "maxmi", [0, 1, 0, 2]), (0, 1, "identity", None)]
        assert len(encode_methods(rows)) == 2

    def test_max_mi_self_reference(self):
        with pytest.raises(DependencyError):
            encode_methods([(0, 0, "maxmi", [0, 0, 0, 2])])

    def test_max_mi_bin_limit(self):
        rows = [(0, 0, "maxmi", [0, 1, 0, 4]), (0, 1, "identity", None)]
        with pytest.raises(BinCountExceededError):
            encode_methods(rows)

    def test_probabilities_not_normalized(self):
        with pytest.raises(ProbabilityNormalizationError):
            encode_methods([(0, 0, "poisson-mixture", [2, "set", [0.6, 0.6]])])

    def test_negative_probabilities(self):
        with pytest.raises(ProbabilityNormalizationError):
            encode_methods([(0, 0, "poisson-mixture", [2, "set", [1.5, -0.5]])])

    def test_each_probability_row_checked(self):
        rows = [(0, 0, "poisson-mixture", [2, "set", [[0.5, 0.5], [0.5, 0.4]]])]
        with pytest.raises(ProbabilityNormalizationError):
            encode_methods(rows)

    def test_probability_tolerance(self):
        rows = [(0, 0, "poisson-mixture", [2, "set", [0.5, 0.5 - 1e-12]])]
        assert len(encode_methods(rows)) == 1
        with pytest.raises(ProbabilityNormalizationError):
            encode_methods(rows, strict_probability_sum=True)

    def test_exact_probabilities_pass_strict_check(self):
        rows = [(0, 0, "poisson-mixture", [2, "set", [0.75, 0.25]])]
        assert len(encode_methods(rows, strict_probability_sum=True)) == 1


class TestExecutionOrder:
    def test_kind_order(self):
        rows = [
            (0, 0, "maxmi", [0, 1, 0, 2]),
            (0, 1, "equal-count", 2),
            (0, 2, "poisson-mixture", 2),
            (0, 3, "identity", None),
            (0, 4, "equal-width", 2),
        ]
        ordered = execution_order(encode_methods(rows))
        assert [m.kind for m in ordered] == [
            MethodKind.IDENTITY,
            MethodKind.EQUAL_WIDTH,
            MethodKind.EQUAL_COUNT,
            MethodKind.POISSON_MIXTURE,
            MethodKind.MAX_MUTUAL_INFO,
        ]

    def test_max_mi_chain_follows_references(self):
        rows = [
            (0, 0, "maxmi", [0, 1, 0, 2]),
            (0, 1, "maxmi", [0, 2, 0, 2]),
            (0, 2, "equal-width", 2),
        ]
        ordered = execution_order(encode_methods(rows))
        assert [m.variable for m in ordered] == [2, 1, 0]

    def test_max_mi_cycle(self):
        rows = [
            (0, 0, "maxmi", [0, 1, 0, 2]),
            (0, 1, "maxmi", [0, 0, 0, 2]),
        ]
        with pytest.raises(DependencyError):
            encode_methods(rows)

    def test_order_independent_of_row_order(self):
        rows = [
            (0, 3, "equal-width", 2),
            (1, 0, "equal-width", 3),
            (0, 1, "maxmi", [1, 0, 0, 2]),
            (0, 0, "poisson-mixture", 2),
        ]
        forward = [m.key for m in execution_order(encode_methods(rows))]
        backward = [m.key for m in execution_order(encode_methods(rows[::-1]))]
        assert forward == backward

    def test_rows_keep_table_order(self):
        rows = [(0, 1, "maxmi", [0, 0, 0, 2]), (0, 0, "equal-width", 2)]
        assert [m.row for m in encode_methods(rows)] == [0, 1]


class TestCheckAgainstRaster:
    shapes = [(3, 4, 10), (2, 4, 10), (2, 6, 1)]

    def test_valid(self):
        rows = [(0, 0, "maxmi", [1, 1, 3, 2]), (1, 1, "equal-width", 2)]
        check_against_raster(encode_methods(rows), self.shapes)

    def test_category_out_of_range(self):
        with pytest.raises(InputShapeError):
            check_against_raster(encode_methods([(3, 0, "identity", None)]), self.shapes)

    def test_variable_out_of_range(self):
        with pytest.raises(InputShapeError):
            check_against_raster(encode_methods([(1, 2, "identity", None)]), self.shapes)

    def test_reference_time_bin_out_of_range(self):
        rows = [(0, 0, "maxmi", [1, 1, 4, 2]), (1, 1, "equal-width", 2)]
        with pytest.raises(DependencyError):
            check_against_raster(encode_methods(rows), self.shapes)

    def test_reference_length_mismatch(self):
        rows = [(0, 0, "maxmi", [2, 1, 0, 2]), (2, 1, "equal-width", 2)]
        with pytest.raises(DependencyError):
            check_against_raster(encode_methods(rows), self.shapes)

    def test_single_trial_reference_uses_time_course(self):
        rows = [(2, 0, "maxmi", [2, 1, 0, 2]), (2, 1, "equal-width", 2)]
        check_against_raster(encode_methods(rows), self.shapes)

    def test_probability_rows_must_match_time_bins(self):
        probs = [[0.5, 0.5]] * 3
        rows = [(0, 0, "poisson-mixture", [2, "set", probs])]
        with pytest.raises(ProbabilityMismatchError):
            check_against_raster(encode_methods(rows), self.shapes)

    def test_probability_rows_per_time_bin(self):
        probs = [[0.5, 0.5]] * 4
        rows = [(0, 0, "poisson-mixture", [2, "set", probs])]
        check_against_raster(encode_methods(rows), self.shapes)

