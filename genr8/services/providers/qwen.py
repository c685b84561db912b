from genr8.services.providers.kie_jobs import KieJobsAdapter


class QwenAdapter(KieJobsAdapter):
    model_id = "qwen"
    media_type = "image"
    api_key_name = "QWEN_API_KEY"

    def kie_model(self, options: dict) -> str:
        return "qwen/text-to-image"

    def build_input(self, prompt: str, options: dict) -> dict:
        data = {
            "prompt": prompt,
            "image_size": options.get("image_size", "square_hd"),
            "num_inference_steps": options.get("num_inference_steps", 30),
            "guidance_scale": options.get("guidance_scale", 2.5),
            "enable_safety_checker": options.get("enable_safety_checker", True),
            "output_format": options.get("output_format", "png"),
            "negative_prompt": options.get("negative_prompt", " "),
            "acceleration": options.get("acceleration", "none"),
        }
        if options.get("seed") is not None:
            data["seed"] = options["seed"]
        return data
