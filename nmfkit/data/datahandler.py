import os
import logging
import pandas as pd
import numpy as np


logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)


class DataHandler:
    """
    The class for loading and checking input matrices for use in nmfkit.

    The DataHandler class provides a standardized way of preparing a non-negative matrix from file for NMF models.
    Input files can be comma separated .csv files or tab separated .txt/.tsv files.

    Parameters
    ----------
    input_path : str
        The file path to the input dataset.
    index_col : str
        The name of the index column, if the dataset has one. Default = None, no index column.
    header : bool
        The first row of the file contains the column names. Default = True.
    load: bool
        Load the input data file, used internally for load_dataframe.
    """
    def __init__(self,
                 input_path: str,
                 index_col: str = None,
                 header: bool = True,
                 load: bool = True
                 ):
        """
        Constructor method.
        """
        self.input_path = input_path
        self.index_col = index_col if index_col not in ("", None) else None
        self.header = header if isinstance(header, bool) else str(header).lower() == "true"

        self.input_data = None
        self.features = None
        self.metrics = None

        if load:
            self._check_paths()
            self.input_data = self._read_data(filepath=self.input_path, index_col=self.index_col)
            self._load_data()

    def get_data(self):
        """
        Get the processed input dataset ready for use in nmfkit.

        Returns
        -------
        np.ndarray
            The input dataset as a float64 numpy array.
        """
        return self.input_data.to_numpy(dtype=np.float64)

    def _check_paths(self):
        """
        Check the input file path to make sure it exists.
        """
        if not os.path.isabs(self.input_path):
            logger.warning(f"Input file path is not absolute: {self.input_path}")
        if not os.path.exists(self.input_path):
            logger.error(f"Input file not found at {self.input_path}")
            raise FileNotFoundError(f"Input file not found at {self.input_path}")

    def _read_data(self, filepath, index_col=None):
        """
        Read in a data file into a pandas dataframe.

        Parameters
        ----------
        filepath : str
            The path to the data file.
        index_col : str
            The index column of the dataset.

        Returns
        -------
        pd.DataFrame
            The contents of the data file.

        """
        ext = str(filepath).split(".")[-1].lower()
        if ext not in ["csv", "txt", "tsv"]:
            logger.error(f"Unknown file type provided. Ext: {ext}, file: {filepath}")
            raise ValueError(f"Unsupported input file type: {ext}")
        header = 0 if self.header else None
        sep = "," if ext == "csv" else "\t"
        return pd.read_csv(filepath, index_col=index_col, header=header, sep=sep)

    def _load_data(self):
        """
        Checks the loaded input data and calculates the summary metrics of each column.
        """
        self.input_data = self.input_data.dropna(axis=0, how="all")
        non_numeric = [c for c in self.input_data.columns if not pd.api.types.is_numeric_dtype(self.input_data[c])]
        if len(non_numeric) > 0:
            logger.error(f"Input dataset contains non-numeric columns: {non_numeric}")
            raise ValueError(f"Input dataset contains non-numeric columns: {non_numeric}")
        if self.input_data.isna().any().any():
            logger.error("Input dataset contains missing or invalid values.")
            raise ValueError("Input dataset contains missing values.")
        if (self.input_data < 0).any().any():
            logger.error("Input dataset contains negative values, matrix can only contain non-negative values.")
            raise ValueError("Input dataset contains negative values.")
        self.features = [str(c) for c in self.input_data.columns]

        self.metrics = pd.DataFrame(
            data={"Min": self.input_data.min(), "25th": self.input_data.quantile(q=0.25),
                  "50th": self.input_data.median(), "75th": self.input_data.quantile(q=0.75),
                  "Max": self.input_data.max(), "Zeros": (self.input_data == 0).sum()})
        logger.info(f"Input dataset loaded, rows: {self.input_data.shape[0]}, columns: {self.input_data.shape[1]}")

    @staticmethod
    def load_dataframe(input_df: pd.DataFrame):
        """
        Pass in a pandas dataframe for the input dataset, instead of using a file.

        Parameters
        ----------
        input_df
            The input dataset.

        Returns
        -------
        DataHandler
            Instance of DataHandler using the dataframe as input.
        """
        dh = DataHandler(input_path="", load=False)
        dh.input_data = input_df.copy()
        dh._load_data()
        return dh
