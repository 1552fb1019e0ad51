import sys, os
src_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..")
sys.path.append(src_path)
import logging
import numpy as np
import pandas as pd
import pytest
from nmfkit.data.datahandler import DataHandler

logger = logging.getLogger(__name__)


class TestDataHandler:

    data_path = None
    input_file = None
    raw_file = None
    negative_file = None
    input_df = None

    @classmethod
    def setup_class(self):
        logger.info("Running DataHandler Test Setup")
        self.data_path = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..",
                                                      "data", "test_output"))
        rng = np.random.default_rng(42)
        self.input_df = pd.DataFrame(data=rng.random(size=(12, 5)), columns=[f"f{i}" for i in range(5)])
        self.input_df.index = pd.Index([f"s{i}" for i in range(12)], name="Sample")
        self.input_file = os.path.join(self.data_path, "datahandler_input.csv")
        self.input_df.to_csv(self.input_file)
        self.raw_file = os.path.join(self.data_path, "datahandler_raw.csv")
        np.savetxt(self.raw_file, self.input_df.to_numpy(), delimiter=",")
        self.negative_file = os.path.join(self.data_path, "datahandler_negative.csv")
        (-self.input_df).to_csv(self.negative_file)

    def test_load(self):
        datahandler = DataHandler(input_path=self.input_file, index_col="Sample")
        V = datahandler.get_data()
        assert V.shape == (12, 5)
        assert datahandler.features == [f"f{i}" for i in range(5)]
        assert np.allclose(V, self.input_df.to_numpy())
        assert datahandler.metrics.shape[0] == 5

    def test_load_no_header(self):
        datahandler = DataHandler(input_path=self.raw_file, header=False)
        V = datahandler.get_data()
        assert V.shape == (12, 5)
        assert np.allclose(V, self.input_df.to_numpy())

    def test_load_single_column(self):
        column = np.random.default_rng(3).random(size=(10, 1))
        column_file = os.path.join(self.data_path, "datahandler_column.csv")
        np.savetxt(column_file, column, delimiter=",")
        datahandler = DataHandler(input_path=column_file, header=False)
        V = datahandler.get_data()
        assert V.shape == (10, 1)
        assert np.allclose(V, column)

    def test_load_tsv(self):
        tsv_file = os.path.join(self.data_path, "datahandler_input.tsv")
        np.savetxt(tsv_file, self.input_df.to_numpy(), delimiter="\t")
        datahandler = DataHandler(input_path=tsv_file, header=False)
        assert np.allclose(datahandler.get_data(), self.input_df.to_numpy())

    def test_load_dataframe(self):
        datahandler = DataHandler.load_dataframe(input_df=self.input_df)
        V = datahandler.get_data()
        assert V.shape == (12, 5)
        assert V.dtype == np.float64

    def test_negative_values(self):
        with pytest.raises(ValueError):
            DataHandler(input_path=self.negative_file, index_col="Sample")

    def test_missing_values(self):
        _df = self.input_df.copy()
        _df.iloc[2, 3] = np.nan
        with pytest.raises(ValueError):
            DataHandler.load_dataframe(input_df=_df)

    def test_non_numeric(self):
        _df = self.input_df.copy()
        _df["label"] = "a"
        with pytest.raises(ValueError):
            DataHandler.load_dataframe(input_df=_df)

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            DataHandler(input_path=os.path.join(self.data_path, "missing.csv"))

    def test_unsupported_file(self):
        xlsx_file = os.path.join(self.data_path, "datahandler_input.xlsx")
        with open(xlsx_file, "w") as xfile:
            xfile.write("")
        with pytest.raises(ValueError):
            DataHandler(input_path=xlsx_file)
