import logging
import pandas as pd
import plotly.graph_objects as go
from nmfkit.model.nmf import NMF
from nmfkit.model.batch_nmf import BatchNMF

logger = logging.getLogger(__name__)


class ModelAnalysis:
    """
    Class for plotting the results of a trained NMF model.

    Parameters
    ----------
    model : NMF
       A trained NMF model.
    """
    def __init__(self, model: NMF):
        self.model = model

    def plot_residues(self, show: bool = True):
        """
        Plot the residue of the model for each iteration of training.
        """
        if self.model.residues is None:
            logger.error("The model has not been trained, no residues to plot.")
            return None
        r_fig = go.Figure()
        r_fig.add_trace(go.Scatter(x=list(range(1, len(self.model.residues) + 1)), y=self.model.residues,
                                   name=f"{self.model.update_rules}", mode='lines'))
        r_fig.update(layout_title_text=f"Residue vs Iterations. Update Rules: {self.model.update_rules}, "
                                       f"Stop Reason: {self.model.stop_reason}")
        r_fig.update_layout(width=1200, height=600, hovermode='x')
        r_fig.update_xaxes(title_text="Iterations")
        r_fig.update_yaxes(title_text="Residue", type="log")
        if show:
            r_fig.show()
            return None
        return r_fig


class BatchAnalysis:
    """
    Class for plotting the results of a trained batch of NMF models.

    Parameters
    ----------
    batch_nmf : BatchNMF
       A trained batch of NMF models.
    """
    def __init__(self, batch_nmf: BatchNMF):
        self.batch_nmf = batch_nmf

    def plot_residues(self, show: bool = True):
        """
        Plot the residue of each model in the batch as it changes over the iterations.

        A model stops updating when one of its termination conditions is met, which can be identified by the models
        that stop before reaching max iterations.
        """
        r_fig = go.Figure()
        for i, result in enumerate(self.batch_nmf.results):
            if result.residues is not None:
                r_fig.add_trace(go.Scatter(x=list(range(1, len(result.residues) + 1)), y=result.residues,
                                           name=f"Model {i + 1}", mode='lines'))
        r_fig.update(layout_title_text=f"Batch Residue vs Iterations. Max Iterations: {self.batch_nmf.max_iter}")
        r_fig.update_layout(width=1200, height=600, hovermode='x')
        r_fig.update_xaxes(title_text="Iterations")
        r_fig.update_yaxes(title_text="Residue", type="log")
        if show:
            r_fig.show()
            return None
        return r_fig

    def plot_residue_distribution(self, show: bool = True):
        """
        Plot the distribution of the final residues of the batch models.

        A broad distribution is often the result of a loose convergence criteria, decreasing converge_delta and
        min_residue will narrow it.
        """
        residues = []
        model = []
        for i, result in enumerate(self.batch_nmf.results):
            if result.residue is not None:
                model.append(i + 1)
                residues.append(result.residue)
        b_r_df = pd.DataFrame(data={"Residue": residues, "Model": model})
        b_r_fig = go.Figure(data=[
            go.Box(y=b_r_df["Residue"], boxpoints="all", notched=True, name="Residue", marker_size=3,
                   text=b_r_df["Model"])
        ])
        b_r_fig.update(layout_title_text="Batch Models Residue Distribution")
        b_r_fig.update_yaxes(title_text="Residue")
        b_r_fig.update_traces(hovertemplate='Model: %{text}<br>%{x}: %{y:.6f}<extra></extra>')
        b_r_fig.update_layout(width=800, height=800)
        if show:
            b_r_fig.show()
            return None
        return b_r_fig
